"""CLI interface with subcommand routing and pipeline orchestration."""

import argparse
import asyncio
import logging
import os
import shutil
import sys
from dataclasses import replace

from paper_narrator.artifacts import (
    PACK_FILE,
    PLAYBACK_FILE,
    config_from_dict,
    config_to_dict,
    get_project_status,
    init_output_dir,
    invalidate_downstream,
    list_projects,
    load_artifact,
    pack_from_dict,
    pack_to_dict,
    slug_from_path,
    write_artifact,
)
from paper_narrator.assembly import assemble, load_clips
from paper_narrator.constants import (
    DEFAULT_WORDS_PER_SECOND,
    KIND_APPENDIX,
    KIND_SUMMARY,
    NARRATOR_VOICE,
    OUTPUT_DIR,
    SPEED_MAX,
    SPEED_MIN,
    VERSION,
)
from paper_narrator.engine import SimulatedEngine
from paper_narrator.errors import ParseError
from paper_narrator.exporter import export
from paper_narrator.models import StructuralRecord, default_config
from paper_narrator.parser import parse_pdf
from paper_narrator.player import PlaybackMachine, clamp
from paper_narrator.sequence import build_sequence, is_section_enabled
from paper_narrator.tts import generate_clips, rate_string


def _check_ffmpeg():
    """Verify ffmpeg is installed."""
    if not shutil.which("ffmpeg"):
        print("Error: ffmpeg is required but not found.", file=sys.stderr)
        print("Install with: brew install ffmpeg", file=sys.stderr)
        raise SystemExit(1)


def _get_project_dir(slug: str) -> str:
    """Get project directory path, verify it exists."""
    project_dir = os.path.join(OUTPUT_DIR, slug)
    if not os.path.isdir(project_dir):
        print(f"Error: Project '{slug}' not found.", file=sys.stderr)
        print("Run 'paper-narrator new <file.pdf>' to create a project.", file=sys.stderr)
        raise SystemExit(1)
    if not os.path.exists(os.path.join(project_dir, PACK_FILE)):
        print(f"Error: Project '{slug}' is incomplete (no {PACK_FILE}).", file=sys.stderr)
        raise SystemExit(1)
    return project_dir


def _load_project(project_dir: str) -> tuple[StructuralRecord, dict]:
    """Load the record and playback settings of a project."""
    data = load_artifact(project_dir, PACK_FILE)
    if not data:
        print(f"Error: {PACK_FILE} is unreadable.", file=sys.stderr)
        raise SystemExit(1)
    try:
        record = pack_from_dict(data)
    except (KeyError, ValueError, TypeError, AttributeError) as e:
        print(f"Error: {PACK_FILE} is invalid: {e}", file=sys.stderr)
        raise SystemExit(1)
    settings = load_artifact(project_dir, PLAYBACK_FILE) or {}
    return record, settings


def _save_settings(project_dir: str, config, settings: dict):
    write_artifact(project_dir, PLAYBACK_FILE, config_to_dict(
        config,
        speed=settings.get("speed", 1.0),
        voice=settings.get("voice", NARRATOR_VOICE),
        words_per_second=settings.get("words_per_second", DEFAULT_WORDS_PER_SECOND),
    ))


def cmd_new(args):
    """Create a new project from a PDF."""
    file_path = args.file

    if not os.path.exists(file_path):
        print(f"Error: File not found: {file_path}", file=sys.stderr)
        raise SystemExit(1)

    slug = slug_from_path(file_path)
    project_dir = os.path.join(OUTPUT_DIR, slug)
    if os.path.exists(os.path.join(project_dir, PACK_FILE)):
        print(f"Error: Project '{slug}' already exists.", file=sys.stderr)
        print(f"Use 'paper-narrator play {slug}' to listen, or 'paper-narrator set {slug} ...' to adjust.", file=sys.stderr)
        raise SystemExit(1)

    try:
        record = parse_pdf(file_path)
    except ParseError as e:
        print(f"Error: {type(e).__name__}: {e}", file=sys.stderr)
        raise SystemExit(1)

    project_dir = init_output_dir(file_path, output_base=OUTPUT_DIR)
    write_artifact(project_dir, PACK_FILE, pack_to_dict(record, source=os.path.abspath(file_path)))
    _save_settings(project_dir, default_config(record), {})

    print(f"Created project: {slug}")
    print(f"Title: {record.meta.title}")
    print(f"Parsed {len(record.sections)} sections, {len(record.sentences)} sentences, {len(record.figures)} figures")
    print(f"Run 'paper-narrator status {slug}' to review, or 'paper-narrator play {slug}' to listen.")


def cmd_status(args):
    """Show project status."""
    slug = args.slug
    project_dir = _get_project_dir(slug)
    record, settings = _load_project(project_dir)
    config = config_from_dict(settings, record)
    status = get_project_status(project_dir)
    meta = record.meta

    print(f"Project: {slug}")
    print(f"Title:   {meta.title}")
    if meta.authors:
        print(f"Authors: {', '.join(meta.authors)}")
    if meta.date:
        print(f"Date:    {meta.date}")
    print(f"Speed:   {settings.get('speed', 1.0)}x  Voice: {settings.get('voice', NARRATOR_VOICE)}")

    print("Sections:")
    for section in record.sections:
        marker = "[on] " if is_section_enabled(section, config) else "[off]"
        print(f"  {marker} {section.id:<6} {section.kind:<12} {section.title} ({len(section.sentence_ids)} sentences)")

    print("Steps:")
    for step in ("parse", "tts", "export"):
        info = status.get(step, {"state": "pending"})
        marker = "[done]" if info["state"] == "done" else "[----]"
        details = f" ({info['files']} files)" if "files" in info else ""
        print(f"  {marker} {step:<12}{details}")


def _parse_switch(key: str, values: list[str]) -> bool:
    if not values or values[-1] not in ("on", "off"):
        print(f"Error: 'set {key}' requires 'on' or 'off'", file=sys.stderr)
        raise SystemExit(1)
    return values[-1] == "on"


def _parse_float(key: str, values: list[str]) -> float:
    if not values:
        print(f"Error: 'set {key}' requires <float>", file=sys.stderr)
        raise SystemExit(1)
    try:
        return float(values[0])
    except ValueError:
        print(f"Error: Invalid value: {values[0]}", file=sys.stderr)
        raise SystemExit(1)


def cmd_set(args):
    """Update playback settings."""
    slug = args.slug
    project_dir = _get_project_dir(slug)
    record, settings = _load_project(project_dir)
    config = config_from_dict(settings, record)

    key = args.key
    values = args.values

    valid_keys = {"section", "appendix", "summary", "speed", "voice", "wps"}
    if key not in valid_keys:
        print(f"Error: Invalid setting key: {key}", file=sys.stderr)
        print(f"Valid keys: {', '.join(sorted(valid_keys))}", file=sys.stderr)
        raise SystemExit(1)

    if key == "section":
        if len(values) < 2:
            print("Error: 'set section' requires <section_id> and 'on' or 'off'", file=sys.stderr)
            raise SystemExit(1)
        section_id = values[0]
        if section_id not in {s.id for s in record.sections}:
            print(f"Error: Unknown section: {section_id}", file=sys.stderr)
            raise SystemExit(1)
        enabled = set(config.enabled_section_ids)
        if _parse_switch(key, values):
            enabled.add(section_id)
        else:
            enabled.discard(section_id)
        config = replace(config, enabled_section_ids=frozenset(enabled))
        print(f"Updated: {section_id} → {values[-1]}")

    elif key in ("appendix", "summary"):
        on = _parse_switch(key, values)
        kind = KIND_APPENDIX if key == "appendix" else KIND_SUMMARY
        enabled = set(config.enabled_section_ids)
        if on:
            # Turning the kind on also enables its sections
            enabled.update(s.id for s in record.sections if s.kind == kind)
        config = replace(
            config,
            enabled_section_ids=frozenset(enabled),
            include_appendix=on if key == "appendix" else config.include_appendix,
            include_summary=on if key == "summary" else config.include_summary,
        )
        print(f"Updated: {key} → {values[-1]}")

    elif key == "speed":
        speed = clamp(_parse_float(key, values), SPEED_MIN, SPEED_MAX)
        settings["speed"] = speed
        print(f"Updated: speed → {speed}x")

    elif key == "voice":
        if not values:
            print("Error: 'set voice' requires <voice_id>", file=sys.stderr)
            raise SystemExit(1)
        settings["voice"] = values[0]
        print(f"Updated: voice → {values[0]}")

    elif key == "wps":
        wps = _parse_float(key, values)
        if wps <= 0:
            print("Error: words per second must be positive", file=sys.stderr)
            raise SystemExit(1)
        settings["words_per_second"] = wps
        print(f"Updated: words per second → {wps}")

    _save_settings(project_dir, config, settings)

    deleted = invalidate_downstream(project_dir, key)
    if deleted:
        print(f"Invalidated: {', '.join(deleted)} (will regenerate on next render)")


async def _narrate(record: StructuralRecord, config, settings: dict, start: int | None):
    """Read the document aloud on the running loop until it completes."""
    loop = asyncio.get_running_loop()
    done = loop.create_future()

    def on_complete(_record):
        if not done.done():
            done.set_result(None)

    engine = SimulatedEngine(loop, words_per_second=settings.get("words_per_second", DEFAULT_WORDS_PER_SECOND))
    machine = PlaybackMachine(engine, loop, on_complete=on_complete)
    machine.load(record, config)
    machine.set_speed(settings.get("speed", 1.0))
    if start is not None and not machine.request_seek(start):
        print(f"Warning: sentence {start} is not narrated; starting from the top.", file=sys.stderr)
    machine.play()
    try:
        await done
    finally:
        machine.stop()


def cmd_play(args):
    """Narrate a project in the terminal."""
    project_dir = _get_project_dir(args.slug)
    record, settings = _load_project(project_dir)
    config = config_from_dict(settings, record)
    try:
        asyncio.run(_narrate(record, config, settings, args.start))
    except KeyboardInterrupt:
        print("\nStopped.")
        return
    print("Done.")


def cmd_render(args):
    """Render the narration to an MP3."""
    _check_ffmpeg()

    slug = args.slug
    project_dir = _get_project_dir(slug)
    record, settings = _load_project(project_dir)
    config = config_from_dict(settings, record)
    pack = load_artifact(project_dir, PACK_FILE) or {}

    if args.force:
        for subdir in ("clips", "final"):
            path = os.path.join(project_dir, subdir)
            if os.path.exists(path):
                shutil.rmtree(path)
    clip_dir = os.path.join(project_dir, "clips")
    os.makedirs(clip_dir, exist_ok=True)

    speed = settings.get("speed", 1.0)
    voice = settings.get("voice", NARRATOR_VOICE)
    tokens = build_sequence(record, config)

    print(f"Generating narration for {len(record.sentences)} sentences...")
    try:
        paths = generate_clips(tokens, record, clip_dir, voice=voice, rate=rate_string(speed))
    except Exception as e:
        print(f"Error: TTS failed: {e}", file=sys.stderr)
        raise SystemExit(1)

    if args.verbose:
        print("Assembling narration...")
    assembled = assemble(tokens, load_clips(paths))

    settings_out = {
        "voice": voice,
        "speed": speed,
        "enabled_sections": sorted(config.enabled_section_ids),
        "include_appendix": config.include_appendix,
        "include_summary": config.include_summary,
    }
    output_path = export(assembled, project_dir, slug, record, settings_out, source=pack.get("source", ""))
    print(f"Done: {output_path}")


def cmd_list(args):
    """List all projects."""
    projects = list_projects(output_base=OUTPUT_DIR)
    if not projects:
        print("No projects found.")
        return
    print("Projects:")
    for name in projects:
        status = get_project_status(os.path.join(OUTPUT_DIR, name))
        marker = "[done]" if status.get("export", {}).get("state") == "done" else "[----]"
        print(f"  {marker} {name}")


def main():
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="paper-narrator",
        description="Paper Narrator: structure academic PDFs and read them aloud",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show pipeline logging")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    new_parser = subparsers.add_parser("new", help="Create a new project from a PDF")
    new_parser.add_argument("file", help="Path to the PDF")
    new_parser.set_defaults(func=cmd_new)

    status_parser = subparsers.add_parser("status", help="Show project status")
    status_parser.add_argument("slug", help="Project slug")
    status_parser.set_defaults(func=cmd_status)

    set_parser = subparsers.add_parser("set", help="Update playback settings")
    set_parser.add_argument("slug", help="Project slug")
    set_parser.add_argument("key", help="Setting key")
    set_parser.add_argument("values", nargs="*", help="Setting value(s)")
    set_parser.set_defaults(func=cmd_set)

    play_parser = subparsers.add_parser("play", help="Narrate a project in the terminal")
    play_parser.add_argument("slug", help="Project slug")
    play_parser.add_argument("--start", type=int, help="Sentence index to start from")
    play_parser.set_defaults(func=cmd_play)

    render_parser = subparsers.add_parser("render", help="Render the narration to MP3")
    render_parser.add_argument("slug", help="Project slug")
    render_parser.add_argument("--force", action="store_true", help="Re-render every clip")
    render_parser.set_defaults(func=cmd_render)

    list_parser = subparsers.add_parser("list", help="List all projects")
    list_parser.set_defaults(func=cmd_list)

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if not args.command:
        parser.print_help()
        return

    args.func(args)
