"""Data model classes for the skier routing engine.

Follows the separation of Geometry (where things are) vs Topology (how things connect):
- Coordinate: Geometry atom (x, y, elevation)
- SnapPoint: Named attachment point of a structure (routing graph node)
- Trail, Lift, BaseLodge: Structures exposing snap points
- SkillLevel, TrailDifficulty: Ordered skill/difficulty scales and hard caps
- TuningConfig, PreferenceMatrix, TuningSource: Versioned scoring parameters
- SkierAgent, Goal, PathStep: Per-agent state
- Candidate, CandidateScore, Decision: Decision records
"""

from skiresort_traffic.model.base_lodge import BaseLodge
from skiresort_traffic.model.coordinate import Coordinate
from skiresort_traffic.model.decision import Candidate, CandidateScore, Decision, DecisionOutcome
from skiresort_traffic.model.goal import Goal, PathStep
from skiresort_traffic.model.lift import Lift
from skiresort_traffic.model.segment import SegmentKind, SegmentRef
from skiresort_traffic.model.skier import SkierAgent
from skiresort_traffic.model.skill import SkillLevel, TrailDifficulty, is_allowed, skill_gap
from skiresort_traffic.model.snap_point import SnapPoint, SnapPointType
from skiresort_traffic.model.trail import Trail
from skiresort_traffic.model.tuning import PreferenceMatrix, TuningConfig, TuningSource, load_tuning

__all__ = [
    "Coordinate",
    "SnapPoint",
    "SnapPointType",
    "Trail",
    "Lift",
    "BaseLodge",
    "SkillLevel",
    "TrailDifficulty",
    "is_allowed",
    "skill_gap",
    "PreferenceMatrix",
    "TuningConfig",
    "TuningSource",
    "load_tuning",
    "SegmentKind",
    "SegmentRef",
    "SkierAgent",
    "Goal",
    "PathStep",
    "Candidate",
    "CandidateScore",
    "Decision",
    "DecisionOutcome",
]
