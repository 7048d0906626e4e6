from __future__ import annotations

INCOMING_PREFIX = "incoming/"
PROCESSED_PREFIX = "processed/"
TEXT_SUFFIX = ".txt"
CSV_SUFFIX = ".csv"
JOB_ID_METADATA_KEY = "job-id"


def is_incoming_key(key: str) -> bool:
    return key.startswith(INCOMING_PREFIX)


def is_artifact_key(key: str) -> bool:
    return key.startswith(PROCESSED_PREFIX) and key.endswith((TEXT_SUFFIX, CSV_SUFFIX))


def incoming_key(file_name: str) -> str:
    return f"{INCOMING_PREFIX}{file_name}"


def processed_base_key(raw_key: str) -> str:
    """`incoming/report.pdf` -> `processed/report.pdf` (original extension kept)."""
    if not is_incoming_key(raw_key):
        raise ValueError(f"not an incoming key: {raw_key}")
    return PROCESSED_PREFIX + raw_key[len(INCOMING_PREFIX):]


def processed_keys(raw_key: str) -> tuple[str, str]:
    base = processed_base_key(raw_key)
    return base + TEXT_SUFFIX, base + CSV_SUFFIX


def artifact_base_name(artifact_key: str) -> str:
    """`processed/2026/report.pdf.csv` -> `2026/report.pdf` (only the artifact suffix dropped)."""
    if not artifact_key.startswith(PROCESSED_PREFIX):
        raise ValueError(f"not a processed key: {artifact_key}")
    stem, dot, _extension = artifact_key[len(PROCESSED_PREFIX):].rpartition(".")
    if not dot or not stem or stem.endswith("/"):
        raise ValueError(f"artifact key has no extension: {artifact_key}")
    return stem


def sibling_keys(artifact_key: str) -> tuple[str, str]:
    """Text and CSV keys of the pair that `artifact_key` belongs to."""
    base = PROCESSED_PREFIX + artifact_base_name(artifact_key)
    return base + TEXT_SUFFIX, base + CSV_SUFFIX


def render_text(lines: list[str]) -> str:
    return "\n".join(lines)


def render_csv(lines: list[str]) -> str:
    # One quoted field per line, no header row.
    return "\n".join('"' + line.replace('"', '""') + '"' for line in lines)
