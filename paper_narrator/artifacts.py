"""Output directory management, JSON artifacts, and project status."""

import json
import logging
import os
import re
import shutil
from dataclasses import asdict

from paper_narrator.constants import (
    DEFAULT_WORDS_PER_SECOND,
    NARRATOR_VOICE,
    OUTPUT_DIR,
)
from paper_narrator.models import (
    Figure,
    Meta,
    PlaybackConfig,
    Section,
    Sentence,
    StructuralRecord,
    default_config,
)

logger = logging.getLogger(__name__)

PACK_FILE = "pack.json"
PLAYBACK_FILE = "playback.json"

# Invalidation map: setting key → list of subdirs to delete
INVALIDATION_MAP = {
    "section": ["clips", "final"],
    "appendix": ["clips", "final"],
    "summary": ["clips", "final"],
    "voice": ["clips", "final"],
    "speed": ["clips", "final"],
}


def slug_from_path(pdf_path: str) -> str:
    """Convert a PDF filename to an output directory slug.

    "Attention Is All You Need.pdf" → "attention_is_all_you_need"
    "/papers/2301.00001v2.pdf" → "2301_00001v2"
    """
    basename = os.path.splitext(os.path.basename(pdf_path))[0]
    return re.sub(r"[^a-zA-Z0-9]+", "_", basename).strip("_").lower()


def init_output_dir(pdf_path: str, output_base: str = OUTPUT_DIR) -> str:
    """Create output/<slug>/ with clips/ and final/; returns the project dir."""
    project_dir = os.path.join(output_base, slug_from_path(pdf_path))
    for subdir in ("clips", "final"):
        os.makedirs(os.path.join(project_dir, subdir), exist_ok=True)
    return project_dir


def write_artifact(project_dir: str, filename: str, data: dict) -> str:
    """Write JSON artifact to project_dir/filename. Returns its path."""
    path = os.path.join(project_dir, filename)
    with open(path, "w") as f:
        json.dump(data, f, indent=2)
    return path


def load_artifact(project_dir: str, filename: str) -> dict | None:
    """Read JSON artifact. Returns None if missing or unreadable."""
    path = os.path.join(project_dir, filename)
    if not os.path.exists(path):
        return None
    try:
        with open(path) as f:
            return json.load(f)
    except json.JSONDecodeError:
        logger.warning("Malformed artifact: %s", path)
        return None


# --- structural record ---

def pack_to_dict(record: StructuralRecord, source: str = "") -> dict:
    data = asdict(record)
    data["source"] = source
    return data


def pack_from_dict(data: dict) -> StructuralRecord:
    """Rebuild a StructuralRecord; raises ValueError when it is inconsistent."""
    meta = data.get("meta", {})
    record = StructuralRecord(
        id=data["id"],
        meta=Meta(
            title=meta.get("title") or Meta().title,
            authors=tuple(meta.get("authors", [])),
            date=meta.get("date"),
        ),
        sections=tuple(
            Section(
                id=s["id"],
                title=s["title"],
                kind=s["kind"],
                sentence_ids=tuple(s.get("sentence_ids", [])),
                included_by_default=s.get("included_by_default", True),
            )
            for s in data.get("sections", [])
        ),
        sentences=tuple(
            Sentence(
                id=s["id"],
                section_id=s["section_id"],
                text=s["text"],
                figure_refs=tuple(s.get("figure_refs", [])),
            )
            for s in data.get("sentences", [])
        ),
        figures=tuple(
            Figure(
                id=f["id"],
                label=f["label"],
                caption=f.get("caption", ""),
                image_url=f.get("image_url", ""),
            )
            for f in data.get("figures", [])
        ),
    )
    errors = record.integrity_errors()
    if errors:
        raise ValueError(f"Inconsistent pack {record.id}: {'; '.join(errors)}")
    return record


# --- playback settings ---

def config_to_dict(
    config: PlaybackConfig,
    speed: float = 1.0,
    voice: str = NARRATOR_VOICE,
    words_per_second: float = DEFAULT_WORDS_PER_SECOND,
) -> dict:
    return {
        "document_id": config.document_id,
        "enabled_section_ids": sorted(config.enabled_section_ids),
        "include_appendix": config.include_appendix,
        "include_summary": config.include_summary,
        "speed": speed,
        "voice": voice,
        "words_per_second": words_per_second,
    }


def config_from_dict(data: dict | None, record: StructuralRecord) -> PlaybackConfig:
    """PlaybackConfig from playback.json, or the record's defaults."""
    if not data or data.get("document_id") != record.id:
        return default_config(record)
    return PlaybackConfig(
        document_id=record.id,
        enabled_section_ids=frozenset(data.get("enabled_section_ids", [])),
        include_appendix=data.get("include_appendix", False),
        include_summary=data.get("include_summary", False),
    )


def invalidate_downstream(project_dir: str, setting_key: str) -> list[str]:
    """Empty the subdirectories a setting change makes stale.

    Returns list of cleared subdirectory names.
    """
    deleted = []
    for subdir in INVALIDATION_MAP.get(setting_key, []):
        path = os.path.join(project_dir, subdir)
        if os.path.exists(path) and os.listdir(path):
            shutil.rmtree(path)
            os.makedirs(path, exist_ok=True)  # recreate empty dir
            deleted.append(subdir)
    return deleted


def get_project_status(project_dir: str) -> dict:
    """Return dict describing the state of each pipeline step."""
    status = {}

    pack = load_artifact(project_dir, PACK_FILE)
    if pack:
        status["parse"] = {
            "state": "done",
            "sections": len(pack.get("sections", [])),
            "sentences": len(pack.get("sentences", [])),
        }
    else:
        status["parse"] = {"state": "pending"}

    clip_dir = os.path.join(project_dir, "clips")
    clips = [f for f in os.listdir(clip_dir) if f.endswith(".mp3")] if os.path.isdir(clip_dir) else []
    status["tts"] = {"state": "done", "files": len(clips)} if clips else {"state": "pending"}

    final_dir = os.path.join(project_dir, "final")
    finals = [f for f in os.listdir(final_dir) if f.endswith(".mp3")] if os.path.isdir(final_dir) else []
    status["export"] = {"state": "done" if finals else "pending"}

    return status


def list_projects(output_base: str = OUTPUT_DIR) -> list[str]:
    """Sorted slugs of directories under output_base holding a pack.json."""
    if not os.path.exists(output_base):
        return []
    projects = []
    for name in os.listdir(output_base):
        if os.path.exists(os.path.join(output_base, name, PACK_FILE)):
            projects.append(name)
    return sorted(projects)
