"""
Three-stage crash flow: pre-crash action -> contributing factor -> outcome.

Feeds the flow (sankey) view. Only the most frequent actions and factors
keep their own node; the long tail and missing values fold into "Other".
"""
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List

from collision_risk.features.dimensions import Dimension

OTHER = "Other"
INJURED = "Injured"
NOT_INJURED = "Not injured"


@dataclass(frozen=True)
class FlowLink:
    pre_crash: str
    factor: str
    outcome: str
    count: int


@dataclass
class EventFlow:
    left: Dict[str, int] = field(default_factory=dict)
    middle: Dict[str, int] = field(default_factory=dict)
    right: Dict[str, int] = field(default_factory=dict)
    links: List[FlowLink] = field(default_factory=list)

    @property
    def total(self) -> int:
        return sum(link.count for link in self.links)


def _top(counter, n):
    return {value for value, _ in counter.most_common(n)}


def build_event_flow(records, left_top=6, middle_top=8) -> EventFlow:
    triples = []
    for r in records:
        action = Dimension.PRE_CRASH.value_of(r) or OTHER
        factor = Dimension.FACTOR1.value_of(r) or OTHER
        outcome = INJURED if r.injured else NOT_INJURED
        triples.append((action, factor, outcome))

    if not triples:
        return EventFlow()

    keep_left = _top(Counter(t[0] for t in triples), left_top)
    keep_middle = _top(Counter(t[1] for t in triples), middle_top)

    links = Counter()
    for action, factor, outcome in triples:
        if action not in keep_left:
            action = OTHER
        if factor not in keep_middle:
            factor = OTHER
        links[(action, factor, outcome)] += 1

    flow = EventFlow()
    for (action, factor, outcome), count in sorted(links.items(), key=lambda kv: (-kv[1], kv[0])):
        flow.links.append(FlowLink(action, factor, outcome, count))
        flow.left[action] = flow.left.get(action, 0) + count
        flow.middle[factor] = flow.middle.get(factor, 0) + count
        flow.right[outcome] = flow.right.get(outcome, 0) + count
    return flow
