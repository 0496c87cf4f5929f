"""CLI entry point: run, frames, history commands.

Usage:
    prompt-maker run <video.mp4> [options]
    prompt-maker frames <video> --out <dir>
    prompt-maker history list|show|delete
"""

from __future__ import annotations

import argparse
import base64
import json
import logging
import sys
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from client.api import ApiError, PromptMakerClient
from client.keyframes import (
    DEFAULT_CANDIDATE_COUNT,
    DEFAULT_PICK_COUNT,
    InvalidVideoError,
    select_keyframes,
)
from models.frames import CandidateFrame
from services.upload_coordinator import MIN_UPLOAD_SIZE, VIDEO_EXTENSION

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    load_dotenv()
    parser = _build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    try:
        return args.func(args)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except (ApiError, InvalidVideoError, OSError) as exc:
        logger.error("Error: %s", exc, exc_info=args.verbose)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="prompt-maker",
        description="Turn a video into a ready-to-use generative prompt",
    )
    parser.add_argument("--api", default=None, help="API base URL (default: $PROMPT_MAKER_API or http://localhost:8000)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command")

    # --- run ---
    p_run = subparsers.add_parser("run", help="Upload a video, pick keyframes and generate a prompt")
    p_run.add_argument("video", type=Path, help="Path to an .mp4 file (at least 10MB)")
    p_run.add_argument("-t", "--template", default="general", help="general, sdxl, midjourney or video")
    p_run.add_argument("--goal", default=None, help="What the prompt is for")
    p_run.add_argument("--language", default=None, help="Output language code")
    p_run.add_argument("--style", default=None, help="Writing style for the prompt")
    _add_frame_options(p_run)
    p_run.set_defaults(func=_cmd_run)

    # --- frames ---
    p_frames = subparsers.add_parser("frames", help="Only select keyframes and write them as JPEG files")
    p_frames.add_argument("video", type=Path, help="Path to a video file")
    p_frames.add_argument("-o", "--out", type=Path, default=Path("./frames"), help="Output directory (default: ./frames)")
    _add_frame_options(p_frames)
    p_frames.set_defaults(func=_cmd_frames)

    # --- history ---
    p_history = subparsers.add_parser("history", help="Browse or delete generated prompts")
    history_sub = p_history.add_subparsers(dest="history_command", required=True)

    p_list = history_sub.add_parser("list", help="List recent prompts")
    p_list.add_argument("--limit", type=int, default=20)
    p_list.add_argument("--offset", type=int, default=0)
    p_list.set_defaults(func=_cmd_history_list)

    p_show = history_sub.add_parser("show", help="Show one prompt")
    p_show.add_argument("id", type=int)
    p_show.set_defaults(func=_cmd_history_show)

    p_delete = history_sub.add_parser("delete", help="Delete one prompt")
    p_delete.add_argument("id", type=int)
    p_delete.set_defaults(func=_cmd_history_delete)

    return parser


def _add_frame_options(p: argparse.ArgumentParser) -> None:
    p.add_argument("--frames", type=int, default=DEFAULT_PICK_COUNT, help=f"Frames to keep (default: {DEFAULT_PICK_COUNT})")
    p.add_argument(
        "--candidates", type=int, default=DEFAULT_CANDIDATE_COUNT,
        help=f"Frames to sample before picking (default: {DEFAULT_CANDIDATE_COUNT})",
    )


def _print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False, default=str))


def _log_candidate(index: int, total: int, candidate: CandidateFrame) -> None:
    logger.info("[keyframes] candidate %d/%d t=%.2fs score=%s", index + 1, total, candidate.timestamp, candidate.score)


def _check_video(path: Path) -> None:
    if not path.name.lower().endswith(VIDEO_EXTENSION):
        raise InvalidVideoError("Video must be an .mp4 file.")
    if path.stat().st_size < MIN_UPLOAD_SIZE:
        raise InvalidVideoError("Video must be at least 10MB.")


def _cmd_run(args: argparse.Namespace) -> int:
    _check_video(args.video)
    size = args.video.stat().st_size
    logger.info("file: %s (%d bytes)", args.video.name, size)

    with PromptMakerClient(args.api) as client:
        key = client.upload_video(
            args.video,
            on_progress=lambda n, sent, total: logger.info("upload part %d: %d/%d bytes", n, sent, total),
        )

        logger.info("extract frames...")
        picked = select_keyframes(args.video, args.frames, args.candidates, on_progress=_log_candidate)
        logger.info("frames selected: %d", len(picked))

        logger.info("generate prompt...")
        out = client.make_prompt(
            [c.data_url for c in picked],
            template=args.template,
            goal=args.goal,
            language=args.language,
            style=args.style,
            video_key=key,
            video_name=args.video.name,
            video_size=size,
        )
    _print_json(out["result"])
    logger.info("saved as history id=%s", out["id"])
    return 0


def _cmd_frames(args: argparse.Namespace) -> int:
    picked = select_keyframes(args.video, args.frames, args.candidates, on_progress=_log_candidate)
    args.out.mkdir(parents=True, exist_ok=True)
    for candidate in picked:
        _, encoded = candidate.data_url.split(",", 1)
        target = args.out / f"frame_{candidate.timestamp:09.3f}.jpg"
        target.write_bytes(base64.b64decode(encoded))
        print(target)
    return 0


def _cmd_history_list(args: argparse.Namespace) -> int:
    with PromptMakerClient(args.api) as client:
        items = client.list_history(args.limit, args.offset)
    for item in items:
        video = f" • {item['video_name']}" if item.get("video_name") else ""
        print(f"#{item['id']} • {item['template']} • {item['created_at']}{video}")
        print(f"    {item.get('summary') or ''}")
    return 0


def _cmd_history_show(args: argparse.Namespace) -> int:
    with PromptMakerClient(args.api) as client:
        item = client.get_history(args.id)
    _print_json(
        {
            name: item.get(name)
            for name in ("id", "template", "created_at", "summary", "prompt", "negative_prompt", "tags", "notes")
        }
    )
    return 0


def _cmd_history_delete(args: argparse.Namespace) -> int:
    with PromptMakerClient(args.api) as client:
        client.delete_history(args.id)
    logger.info("Deleted history #%d", args.id)
    return 0


if __name__ == "__main__":
    sys.exit(main())
