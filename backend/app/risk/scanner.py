"""
scanner.py — Image risk scan (placeholder classifier).

═══════════════════════════════════════════════════════════════════════════
THIS IS NOT A MODEL
═══════════════════════════════════════════════════════════════════════════

RandomRiskClassifier never looks at the image. It draws:

    Severity — one uniform roll r ∈ [0, 1):

        r range          Severity
        ─────────────    ────────
        [0.00, 0.45)     Low
        [0.45, 0.75)     Medium
        [0.75, 0.92)     High
        [0.92, 1.00)     Critical

    Hazard type — an independent uniform pick from
        structural · fire · flood · landslide · other

The seam is RiskClassifier: anything with ``async classify(image) ->
RiskAssessment`` can replace it without touching RiskScanService or the
API route. A CPU-bound model should offload its own work (e.g.
``starlette.concurrency.run_in_threadpool``) inside ``classify``.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol, Sequence, Tuple

from backend.app.alerts.models import Alert, AlertSource
from backend.app.core.errors import ValidationError
from backend.app.storage.base import AlertStore

logger = logging.getLogger(__name__)


class RiskSeverity(str, Enum):
    LOW      = "Low"
    MEDIUM   = "Medium"
    HIGH     = "High"
    CRITICAL = "Critical"


# Upper bounds (exclusive) of each severity band
SEVERITY_BANDS: Tuple[Tuple[float, RiskSeverity], ...] = (
    (0.45, RiskSeverity.LOW),
    (0.75, RiskSeverity.MEDIUM),
    (0.92, RiskSeverity.HIGH),
    (1.00, RiskSeverity.CRITICAL),
)

SCAN_HAZARD_TYPES: Sequence[str] = ("structural", "fire", "flood", "landslide", "other")

SCAN_DISTRICT = "Unknown"
ANONYMOUS_REPORTER = "anonymous"


def severity_for_roll(roll: float) -> RiskSeverity:
    """
    >>> severity_for_roll(0.0).value, severity_for_roll(0.45).value
    ('Low', 'Medium')
    >>> severity_for_roll(0.92).value
    'Critical'
    """
    for upper, severity in SEVERITY_BANDS:
        if roll < upper:
            return severity
    return RiskSeverity.CRITICAL


@dataclass(frozen=True)
class RiskAssessment:
    severity: str
    hazard_type: str


class RiskClassifier(Protocol):
    """Image in, severity + hazard type out."""

    async def classify(self, image: str) -> RiskAssessment: ...


class RandomRiskClassifier:
    """Placeholder classifier; pass a seeded ``random.Random`` for repeatability."""

    def __init__(self, rng: Optional[random.Random] = None):
        self._rng = rng or random.Random()

    async def classify(self, image: str) -> RiskAssessment:
        severity = severity_for_roll(self._rng.random())
        hazard_type = self._rng.choice(SCAN_HAZARD_TYPES)
        return RiskAssessment(severity=severity.value, hazard_type=hazard_type)


@dataclass
class ScanResult:
    assessment: RiskAssessment
    alert: Alert

    def to_dict(self) -> dict:
        return {
            "severity": self.assessment.severity,
            "detectedType": self.assessment.hazard_type,
            "aiAlert": self.alert.to_dict(),
        }


class RiskScanService:
    """Validates a scan request, classifies it and stores the resulting alert."""

    def __init__(self, store: AlertStore, classifier: Optional[RiskClassifier] = None):
        self.store = store
        self.classifier = classifier or RandomRiskClassifier()

    async def scan(
        self,
        image: Optional[str],
        lat: Optional[float] = None,
        lon: Optional[float] = None,
        reporter: Optional[str] = None,
    ) -> ScanResult:
        if not image:
            raise ValidationError("imageBase64 required", fields=["imageBase64"])

        assessment = await self.classifier.classify(image)
        reporter = reporter or ANONYMOUS_REPORTER

        alert = await self.store.insert(Alert(
            district=SCAN_DISTRICT,
            alert=f"AI Scan: {assessment.hazard_type} detected",
            severity=assessment.severity,
            description=(
                f"AI-scanned image suggests {assessment.hazard_type}. "
                f"Reporter: {reporter}"
            ),
            lat=lat,
            lon=lon,
            type=assessment.hazard_type,
            source=AlertSource.AI_SCAN.value,
        ))

        logger.info(
            "AI scan stored: %s / %s", assessment.severity, assessment.hazard_type,
            extra={"alert_id": alert.id, "source": AlertSource.AI_SCAN.value},
        )
        return ScanResult(assessment=assessment, alert=alert)
