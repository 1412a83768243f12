# SPDX-License-Identifier: MIT
"""CSV exports of student selections for the manager pages."""

import csv
import io
from collections.abc import Iterable
from datetime import datetime
from typing import Any

from .enums import SelectionStatus
from .logging_config import get_detail_logger


detail_logger = get_detail_logger()

SUPPORTED_LANGUAGES = ("en", "ru")

NOT_AVAILABLE = "N/A"

# Byte order mark so spreadsheet tools detect UTF-8
UTF8_BOM = "\ufeff"

HEADERS: dict[str, list[str]] = {
    "en": ["Student Name", "Email", "Status", "Selection Date"],
    "ru": ["Имя студента", "Электронная почта", "Статус", "Дата выбора"],
}

STATUS_LABELS_RU: dict[str, str] = {
    SelectionStatus.APPROVED.value: "Утверждено",
    SelectionStatus.PENDING.value: "На рассмотрении",
    SelectionStatus.REJECTED.value: "Отклонено",
}

_MONTHS_EN = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)  # fmt: skip
_MONTHS_RU = (
    "янв.", "февр.", "мар.", "апр.", "мая", "июн.",
    "июл.", "авг.", "сент.", "окт.", "нояб.", "дек.",
)  # fmt: skip


def _check_language(language: str) -> None:
    if language not in SUPPORTED_LANGUAGES:
        raise ValueError(
            f"Unsupported language '{language}', expected one of {SUPPORTED_LANGUAGES}"
        )


def format_date(value: str | None, language: str = "en") -> str:
    """Format an ISO 8601 timestamp as a short date, e.g. ``Mar 5, 2024``.

    Unparsable values are returned unchanged; missing ones become ``N/A``.
    """
    if not value:
        return NOT_AVAILABLE
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        detail_logger.debug(f"Keeping unparsable selection date as is: {value!r}")
        return value

    if language == "ru":
        return f"{parsed.day} {_MONTHS_RU[parsed.month - 1]} {parsed.year} г."
    return f"{_MONTHS_EN[parsed.month - 1]} {parsed.day}, {parsed.year}"


def translate_status(status: str | None, language: str = "en") -> str:
    if not status:
        return NOT_AVAILABLE
    if language == "ru":
        return STATUS_LABELS_RU.get(status, STATUS_LABELS_RU[SelectionStatus.REJECTED.value])
    return status


def pending_or_approved(selections: Iterable[dict[str, Any]]) -> list[dict[str, Any]]:
    """Selections that still count towards a pack: pending or approved ones."""
    counted = {SelectionStatus.PENDING.value, SelectionStatus.APPROVED.value}
    return [s for s in selections if s.get("status") in counted]


def selections_to_csv(
    selections: Iterable[dict[str, Any]],
    language: str = "en",
    include_bom: bool = False,
) -> str:
    """Render selections as CSV with localized headers and statuses.

    Each selection may embed the student's profile under ``profiles``
    (``full_name`` and ``email``); missing fields are written as ``N/A``.
    Every field is quoted.

    Args:
        selections: Selection rows as returned by the Record Store
        language: ``en`` or ``ru``
        include_bom: Prefix the output with a UTF-8 byte order mark

    Returns:
        CSV text with ``\\n`` line endings

    Raises:
        ValueError: If the language is not supported
    """
    _check_language(language)

    buffer = io.StringIO()
    if include_bom:
        buffer.write(UTF8_BOM)

    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(HEADERS[language])

    count = 0
    for selection in selections:
        profile = selection.get("profiles") or {}
        writer.writerow(
            [
                profile.get("full_name") or NOT_AVAILABLE,
                profile.get("email") or NOT_AVAILABLE,
                translate_status(selection.get("status"), language),
                format_date(selection.get("created_at"), language),
            ]
        )
        count += 1

    detail_logger.debug(f"Exported {count} selections as CSV ({language})")
    return buffer.getvalue()


def course_enrollments_to_csv(
    selections: Iterable[dict[str, Any]],
    course_id: Any,
    language: str = "en",
    include_bom: bool = False,
) -> str:
    """Export the pending or approved students who picked ``course_id``."""
    # ids arrive as ints from some columns and strings from others
    wanted = str(course_id)
    enrolled = [
        s
        for s in pending_or_approved(selections)
        if wanted in {str(c) for c in s.get("selected_course_ids") or []}
    ]
    return selections_to_csv(enrolled, language, include_bom=include_bom)
