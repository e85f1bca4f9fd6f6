"""Member selection for vacation runs.

Two selectors are available: the greedy :class:`VacationMemberSelector`
working on day summaries, and the staged
:class:`PolicyDrivenMemberSelector` working on a flat member list.
"""

from .candidates import SelectionCandidate, build_day_contexts
from .greedy import VacationMemberSelector, select
from .options import SelectionPolicy, VacationSelectionOptions
from .policy_selector import (
    PolicyDrivenMemberSelector,
    default_policy_selector,
)
from .telemetry import SelectionTelemetry

__all__ = [
    "PolicyDrivenMemberSelector",
    "SelectionCandidate",
    "SelectionPolicy",
    "SelectionTelemetry",
    "VacationMemberSelector",
    "VacationSelectionOptions",
    "build_day_contexts",
    "default_policy_selector",
    "select",
]
