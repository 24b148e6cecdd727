"""Justification rule for readings dated before today."""

from datetime import date

from fuelstation.core.clock import Clock
from fuelstation.services.errors import BackdatingReasonRequired

# Marker of the single-string notes format older reports still parse
LEGACY_PREFIX = "BACKDATED:"
LEGACY_SEPARATOR = " | "


class BackdatingPolicy:
    """Decides when a reading needs a backdating justification."""

    def __init__(self, clock: Clock) -> None:
        self.clock = clock

    def requires_justification(self, reading_date: date) -> bool:
        """True iff the reading date is strictly before today."""
        return reading_date < self.clock.today()

    def validate(self, reading_date: date, justification: str | None) -> str | None:
        """Check the justification for a reading date.

        Returns the stripped justification when one is required, ``None``
        otherwise.
        """
        if not self.requires_justification(reading_date):
            return None
        reason = (justification or "").strip()
        if not reason:
            raise BackdatingReasonRequired(
                f"A reason is required for readings dated before {self.clock.today().isoformat()}"
            )
        return reason

    def merge(
        self,
        reading_date: date,
        existing: str | None,
        supplied: str | None,
    ) -> str | None:
        """Resolve the justification to keep when a reading is edited.

        An existing justification is kept verbatim and a newly supplied one is
        ignored. Without one, the rule for new readings applies.
        """
        if existing:
            return existing
        return self.validate(reading_date, supplied)


def compose_notes(reason: str | None, notes: str | None) -> str:
    """Render justification and free-form notes as one legacy notes string."""
    notes = (notes or "").strip()
    if not reason:
        return notes
    return f"{LEGACY_PREFIX} {reason}{LEGACY_SEPARATOR}{notes}"


def split_notes(text: str | None) -> tuple[str | None, str]:
    """Split a legacy notes string into ``(reason, notes)``.

    Only a leading marker is recognised, so notes that merely mention the
    marker text are returned untouched. The reason ends at the first full
    separator; a bare ``|`` inside the reason is kept.
    """
    text = (text or "").lstrip()
    if not text.startswith(LEGACY_PREFIX):
        return None, text.strip()
    body = text[len(LEGACY_PREFIX):]
    reason, separator, notes = body.partition(LEGACY_SEPARATOR)
    if not separator:
        # Trailing whitespace after an empty notes part may have been trimmed
        reason = reason.rstrip().removesuffix(LEGACY_SEPARATOR.rstrip())
    return reason.strip() or None, notes.strip()
