"""Onboarding workflow state machine."""

from catalog_loader.orchestration.states import TRANSITIONS, Outcome, State, next_state
from catalog_loader.orchestration.workflow import OnboardingWorkflow, WorkflowResult
from catalog_loader.orchestration.workflow_context import Transition, WorkflowExecutionContext

__all__ = [
    "OnboardingWorkflow",
    "Outcome",
    "State",
    "TRANSITIONS",
    "Transition",
    "WorkflowExecutionContext",
    "WorkflowResult",
    "next_state",
]
