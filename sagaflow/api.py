"""HTTP front-end for the orchestration service."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Dict, Optional

from fastapi import APIRouter, Body, Depends, FastAPI, Request
from fastapi.responses import JSONResponse

from .errors import NotFoundError, SagaflowError
from .persistence import RunStatus
from .service import OrchestratorService

logger = logging.getLogger(__name__)

router = APIRouter()


def get_service(request: Request) -> OrchestratorService:
    return request.app.state.service


@router.get("/health")
async def health() -> Dict[str, Any]:
    return {
        "status": "healthy",
        "service": "sagaflow orchestrator",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.post("/place-order")
async def place_order(
    order: Dict[str, Any] = Body(...),
    service: OrchestratorService = Depends(get_service),
):
    """Run the PlaceOrder workflow for ``order``."""
    result = await service.place_order(order)
    if result.status is RunStatus.COMPLETED:
        return {
            "message": f"Order {order.get('id')} processed successfully",
            "workflowExecutionId": result.run_id,
            "result": result.output,
            "duration": result.duration_ms,
        }
    return JSONResponse(
        status_code=500,
        content={
            "error": f"Order processing failed: {result.error}",
            "faultName": result.fault_name,
            "workflowExecutionId": result.run_id,
            "duration": result.duration_ms,
        },
    )


@router.get("/workflow-status/{order_id}")
async def workflow_status(order_id: str, service: OrchestratorService = Depends(get_service)):
    return await service.workflow_status(order_id)


@router.put("/update-catalog-stock/{product_id}")
async def update_catalog_stock(
    product_id: str,
    body: Optional[Dict[str, Any]] = Body(None),
    service: OrchestratorService = Depends(get_service),
):
    try:
        await service.update_catalog_stock(product_id, (body or {}).get("quantity"))
    except ValueError as e:
        return JSONResponse(status_code=400, content={"error": str(e)})
    except SagaflowError as e:
        logger.error(f"Stock update for product {product_id} failed: {e}")
        return JSONResponse(
            status_code=500,
            content={"error": f"Failed to update stock for product {product_id}: {e}"},
        )
    return {"message": f"Stock updated successfully for product {product_id}"}


@router.get("/workflows")
async def list_workflows(service: OrchestratorService = Depends(get_service)):
    return {"workflows": service.list_workflows()}


@router.get("/workflows/{name}")
async def get_workflow(name: str, service: OrchestratorService = Depends(get_service)):
    definition = service.get_workflow_definition(name)
    return {"workflow": definition.to_document()}


@router.post("/workflows/{name}/execute")
async def execute_workflow(
    name: str,
    payload: Dict[str, Any] = Body(...),
    service: OrchestratorService = Depends(get_service),
):
    result = await service.execute(name, payload)
    return {"result": result.model_dump(mode="json")}


@router.get("/executions")
async def list_executions(service: OrchestratorService = Depends(get_service)):
    runs = await service.list_runs()
    return {"executions": [run.model_dump(mode="json") for run in runs]}


@router.get("/executions/{run_id}")
async def get_execution(run_id: str, service: OrchestratorService = Depends(get_service)):
    run = await service.get_run(run_id)
    return {"execution": run.model_dump(mode="json")}


async def _not_found(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"error": str(exc)})


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    service: OrchestratorService = app.state.service
    transport = service.transport
    if transport is not None:
        try:
            await transport.connect()
        except Exception as e:
            logger.error(f"Broker unavailable, order events will not be published: {e}")
            service.transport = None
    yield
    if service.transport is not None:
        await service.transport.disconnect()


def create_app(service: Optional[OrchestratorService] = None) -> FastAPI:
    """Build the FastAPI application around ``service``."""
    app = FastAPI(title="sagaflow orchestrator", lifespan=_lifespan)
    app.state.service = service or OrchestratorService.from_config()
    app.add_exception_handler(NotFoundError, _not_found)
    app.include_router(router)
    return app
