"""
User-selected search filters.

``SearchFilter`` names the data types to fetch plus the incidental
date/author restrictions; ``DetectionFilter`` holds the detection and
cluster specific criteria.  Every field is optional and an absent or empty
collection means "unfiltered".

Filters are persisted by the preference store, so both classes round-trip
through plain dicts (``as_dict`` / ``from_dict``).
"""
from __future__ import annotations

import datetime
import enum
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional

from .entities import DataType, Sign


class EditStatus(enum.Enum):
    OPEN = "OPEN"
    MAPPED = "MAPPED"          # service splits this into FIXED + ALREADY_FIXED
    BAD_SIGN = "BAD_SIGN"
    OTHER = "OTHER"


class DetectionMode(enum.Enum):
    AUTOMATIC = "AUTOMATIC"
    MANUAL = "MANUAL"
    VALIDATED = "VALIDATED"


class OsmComparison(enum.Enum):
    NEW = "NEW"
    CHANGED = "CHANGED"
    UNKNOWN = "UNKNOWN"
    SAME = "SAME"
    IMPLIED = "IMPLIED"


class SignType(enum.Enum):
    SPEED_LIMIT = "SPEED_LIMIT"
    TURN_RESTRICTION = "TURN_RESTRICTION"
    WARNING = "WARNING"
    INFORMATION = "INFORMATION"
    REGULATORY = "REGULATORY"
    TRAFFIC_LIGHTS_SIGN = "TRAFFIC_LIGHTS_SIGN"
    GIVE_WAY = "GIVE_WAY"
    STOP = "STOP"
    LANE = "LANE"
    BLURRING = "BLURRING"


@dataclass(frozen=True)
class ConfidenceLevelFilter:
    min_confidence_level: Optional[float] = None
    max_confidence_level: Optional[float] = None

    def __post_init__(self) -> None:
        lo, hi = self.min_confidence_level, self.max_confidence_level
        if lo is not None and hi is not None and lo > hi:
            raise ValueError(f"Invalid confidence range: {lo} > {hi}")


@dataclass(frozen=True)
class DetectionFilter:
    osm_comparisons: List[OsmComparison] = field(default_factory=list)
    edit_statuses: List[EditStatus] = field(default_factory=list)
    sign_types: List[SignType] = field(default_factory=list)
    modes: List[DetectionMode] = field(default_factory=list)
    region: Optional[str] = None
    specific_signs: Optional[List[Sign]] = None
    confidence_level: Optional[ConfidenceLevelFilter] = None

    def as_dict(self) -> Dict:
        return {
            "osm_comparisons": [v.value for v in self.osm_comparisons],
            "edit_statuses": [v.value for v in self.edit_statuses],
            "sign_types": [v.value for v in self.sign_types],
            "modes": [v.value for v in self.modes],
            "region": self.region,
            "specific_signs": (
                [{"internal_name": s.internal_name, "type": s.type,
                  "name": s.name, "region": s.region}
                 for s in self.specific_signs]
                if self.specific_signs is not None else None
            ),
            "confidence_level": (
                {"min": self.confidence_level.min_confidence_level,
                 "max": self.confidence_level.max_confidence_level}
                if self.confidence_level else None
            ),
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "DetectionFilter":
        signs = data.get("specific_signs")
        conf = data.get("confidence_level")
        return cls(
            osm_comparisons=[OsmComparison(v) for v in data.get("osm_comparisons") or []],
            edit_statuses=[EditStatus(v) for v in data.get("edit_statuses") or []],
            sign_types=[SignType(v) for v in data.get("sign_types") or []],
            modes=[DetectionMode(v) for v in data.get("modes") or []],
            region=data.get("region"),
            specific_signs=[Sign(**s) for s in signs] if signs is not None else None,
            confidence_level=(
                ConfidenceLevelFilter(conf.get("min"), conf.get("max")) if conf else None
            ),
        )


@dataclass(frozen=True)
class SearchFilter:
    """What to search for in the current viewport."""
    data_types: FrozenSet[DataType] = frozenset({DataType.PHOTO})
    osm_user_id: Optional[int] = None
    date: Optional[datetime.date] = None
    detection_filter: Optional[DetectionFilter] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "data_types", frozenset(self.data_types))

    def as_dict(self) -> Dict:
        return {
            "data_types": sorted(dt.value for dt in self.data_types),
            "osm_user_id": self.osm_user_id,
            "date": self.date.isoformat() if self.date else None,
            "detection_filter": (
                self.detection_filter.as_dict() if self.detection_filter else None
            ),
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "SearchFilter":
        raw_date = data.get("date")
        det = data.get("detection_filter")
        return cls(
            data_types=frozenset(DataType(v) for v in data.get("data_types") or []),
            osm_user_id=data.get("osm_user_id"),
            date=datetime.date.fromisoformat(raw_date) if raw_date else None,
            detection_filter=DetectionFilter.from_dict(det) if det else None,
        )
