"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Metric(str, Enum):
    """Scalar quantities reported by sensors.

    The member value is the short tag used in routes and in the side log.
    """

    temperature = "temp"
    distance = "dist"
    speed = "speed"

    @property
    def collection_name(self) -> str:
        return _COLLECTION_NAMES[self]

    @property
    def label(self) -> str:
        return self.name


_COLLECTION_NAMES = {
    Metric.temperature: "Temperature",
    Metric.distance: "Distance",
    Metric.speed: "Speed",
}


@dataclass(frozen=True, slots=True)
class Reading:
    """A single stored reading. Values are kept as the strings sensors sent."""

    sensor_id: str
    value: str
    sequence_number: str

    def to_document(self) -> dict[str, str]:
        return {
            "sensorID": self.sensor_id,
            "sensorValue": self.value,
            "seqNum": self.sequence_number,
        }

    @classmethod
    def from_document(cls, document: dict) -> "Reading":
        return cls(
            sensor_id=str(document["sensorID"]),
            value=str(document["sensorValue"]),
            sequence_number=str(document["seqNum"]),
        )
