"""
Daily document numbers: ``ORD-20260314-0007``, ``FACT-20260314-0042``.
"""

from datetime import date


def next_sequence_number(prefix: str, day: date, last_number: str | None) -> str:
    """
    Build the next number of the day after ``last_number``.

    ``last_number`` is the highest number issued with the same
    ``{prefix}-{yyyymmdd}-`` stem, or None on the first document of the day.
    """
    stem = f"{prefix}-{day:%Y%m%d}-"
    sequence = 1
    if last_number and last_number.startswith(stem):
        try:
            sequence = int(last_number[len(stem):]) + 1
        except ValueError:
            sequence = 1
    return f"{stem}{sequence:04d}"
