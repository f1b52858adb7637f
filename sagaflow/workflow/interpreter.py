"""Synchronous execution of declarative workflow definitions."""

from __future__ import annotations

import copy
import logging
import time
import uuid
from typing import TYPE_CHECKING, Any, Mapping, Optional, Sequence

from ..errors import DiscoveryError, FaultRaised, InvocationError, SagaflowError
from ..persistence import ActivityRecord, InMemoryRunRepository, RunContext, RunRepository, RunResult
from .catalog import WorkflowCatalog
from .definition import Activity, Conditional, Fault, Invoke, Receive, Reply
from .expressions import compile_predicate, resolve_path

if TYPE_CHECKING:
    from ..invoker import ServiceInvoker

logger = logging.getLogger(__name__)


def new_run_id() -> str:
    return f"exec_{uuid.uuid4().hex}"


def render_output(template: Mapping[str, Any], scope: Mapping[str, Any]) -> dict[str, Any]:
    """Substitute ``${path}`` string values in ``template`` from ``scope``."""
    rendered: dict[str, Any] = {}
    for key, value in template.items():
        if isinstance(value, str) and value.startswith("${") and value.endswith("}"):
            rendered[key] = resolve_path(scope, value[2:-1].strip())
        elif isinstance(value, Mapping):
            rendered[key] = render_output(value, scope)
        else:
            rendered[key] = value
    return rendered


class WorkflowInterpreter:
    """Walks a workflow definition depth-first against a per-run scope.

    Each run owns its :class:`RunContext`; concurrent runs share nothing but
    the catalog, the invoker and the repository. Every ``invoke`` activity is a
    single call attempt and the first error ends the run.
    """

    def __init__(
        self,
        catalog: WorkflowCatalog,
        invoker: "ServiceInvoker",
        repository: Optional[RunRepository] = None,
    ) -> None:
        self._catalog = catalog
        self._invoker = invoker
        self._repository = repository or InMemoryRunRepository()

    @property
    def repository(self) -> RunRepository:
        return self._repository

    @property
    def invoker(self) -> "ServiceInvoker":
        return self._invoker

    async def execute(self, definition_name: str, input_payload: Any) -> RunResult:
        """Run ``definition_name`` to a terminal status.

        Raises:
            NotFoundError: If no definition with that name is registered.
        """
        definition = self._catalog.get(definition_name)
        context = RunContext(
            id=new_run_id(),
            workflow_name=definition.name,
            variables=copy.deepcopy(definition.variables),
            input_payload=input_payload,
        )
        context.variables[definition.input_variable] = input_payload
        await self._repository.save_run(context)

        logger.info(f"Starting workflow {definition.name} run_id={context.id}")
        started = time.perf_counter()
        error: Optional[str] = None
        fault_name: Optional[str] = None
        try:
            await self._execute_activities(definition.activities, context)
        except FaultRaised as e:
            error, fault_name = str(e), e.fault_name
        except SagaflowError as e:
            error = str(e)
        except Exception as e:
            logger.exception(f"Unexpected error in run_id={context.id}")
            error = f"{type(e).__name__}: {e}"

        context.finish((time.perf_counter() - started) * 1000, error=error, fault_name=fault_name)
        await self._repository.save_run(context)

        if error is None:
            logger.info(
                f"Workflow {definition.name} completed run_id={context.id} in {context.duration_ms:.1f}ms"
            )
        else:
            logger.error(f"Workflow {definition.name} failed run_id={context.id}: {error}")
        return context.to_result()

    async def _execute_activities(
        self, activities: Sequence[Activity], context: RunContext
    ) -> None:
        for index, activity in enumerate(activities):
            context.current_activity_index = index
            logger.debug(f"Executing activity {activity.label} ({activity.type}) run_id={context.id}")
            record = ActivityRecord(name=activity.label, type=activity.type)
            context.history.append(record)
            try:
                detail = await self._execute_activity(activity, context)
            except SagaflowError as e:
                record.close("failed", str(e))
                logger.error(f"Activity {activity.label} failed run_id={context.id}: {e}")
                raise
            record.close("completed", detail)

    async def _execute_activity(self, activity: Activity, context: RunContext) -> Optional[str]:
        if isinstance(activity, Receive):
            return None
        if isinstance(activity, Invoke):
            return await self._execute_invoke(activity, context)
        if isinstance(activity, Conditional):
            return await self._execute_conditional(activity, context)
        if isinstance(activity, Fault):
            raise FaultRaised(activity.fault_name, activity.label)
        if isinstance(activity, Reply):
            if activity.output:
                context.output_payload = render_output(activity.output, context.variables)
            else:
                context.output_payload = copy.deepcopy(context.variables)
            return None
        raise SagaflowError(f"Unsupported activity type: {type(activity).__name__}")

    async def _execute_invoke(self, activity: Invoke, context: RunContext) -> Optional[str]:
        payload = context.variables.get(activity.input_variable)
        logger.info(f"Invoking {activity.service}.{activity.operation} run_id={context.id}")
        detail = None
        try:
            result = await self._invoker.call(activity.service, activity.operation, payload or {})
        except (InvocationError, DiscoveryError) as e:
            if not activity.best_effort:
                raise
            logger.warning(
                f"Best-effort activity {activity.label} failed run_id={context.id}: {e}"
            )
            result = {"status": "failed", "error": str(e)}
            detail = f"best-effort failure: {e}"

        if activity.output_variable:
            context.variables[activity.output_variable] = result
        return detail

    async def _execute_conditional(self, activity: Conditional, context: RunContext) -> str:
        predicate = compile_predicate(activity.condition)
        if predicate.evaluate(context.variables):
            logger.debug(f"Condition {activity.condition!r} true run_id={context.id}")
            await self._execute_activities(activity.then, context)
            return "then"
        logger.debug(f"Condition {activity.condition!r} false run_id={context.id}")
        await self._execute_activities(activity.else_, context)
        return "else"
