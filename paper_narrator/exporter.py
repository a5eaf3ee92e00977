"""Export the narration track as MP3 with metadata tags."""

import json
import os
from datetime import datetime, timezone

from pydub import AudioSegment

from paper_narrator.constants import OUTPUT_BITRATE, VERSION
from paper_narrator.models import StructuralRecord


def export(
    assembled: AudioSegment,
    project_dir: str,
    slug: str,
    record: StructuralRecord,
    settings: dict,
    source: str = "",
) -> str:
    """Export assembled audio as MP3 with metadata tags.

    Creates:
      - output/<slug>/final/<slug>.mp3 (the narration)
      - output/<slug>/final/output.json (provenance manifest)

    Returns path to the final MP3 file.
    """
    final_dir = os.path.join(project_dir, "final")
    os.makedirs(final_dir, exist_ok=True)

    output_path = os.path.join(final_dir, f"{slug}.mp3")
    meta = record.meta

    tags = {"title": meta.title}
    if meta.authors:
        tags["artist"] = ", ".join(meta.authors)
    if meta.date:
        tags["date"] = meta.date

    assembled.export(
        output_path,
        format="mp3",
        bitrate=OUTPUT_BITRATE,
        tags=tags,
    )

    manifest = {
        "project": slug,
        "document_id": record.id,
        "source": source,
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "narrator_version": VERSION,
        "metadata": {
            "title": meta.title,
            "authors": list(meta.authors),
            "date": meta.date,
        },
        "settings": settings,
        "stats": {
            "sections": len(record.sections),
            "sentences": len(record.sentences),
            "figures": len(record.figures),
            "duration_seconds": round(len(assembled) / 1000, 1),
        },
    }

    manifest_path = os.path.join(final_dir, "output.json")
    with open(manifest_path, "w") as f:
        json.dump(manifest, f, indent=2)

    return output_path
