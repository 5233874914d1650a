#!/usr/bin/env python3
"""
listenbook — Listen to a PDF as an audiobook, narrated chapter by chapter.

The PDF is split into chapters (by an OpenAI model, or offline from its
outline), each chapter is narrated by ElevenLabs TTS when you first play it,
and your place and bookmarks are remembered between runs.

Quick start:
  1. Add ELEVENLABS_API_KEY and OPENAI_API_KEY to .env
  2. python listenbook.py book.pdf --dry-run
  3. python listenbook.py book.pdf
  4. python listenbook.py            # pick up where you left off
"""

import argparse
import asyncio
import sys
from pathlib import Path

COMMANDS_HELP = """\
Commands:
  p            play / pause
  c N          go to chapter N
  n / b        next / previous chapter
  m            bookmark the current position
  g N          go to bookmark N
  l            list chapters and bookmarks
  s            show what is playing
  u FILE       upload another PDF
  clear        remove the book from the library
  h            this help
  q            quit"""


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Listen to PDF documents as narrated audiobooks",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # List chapters only, no narration:
  python listenbook.py book.pdf --dry-run

  # Split chapters offline (no OpenAI call):
  python listenbook.py book.pdf --structurer outline

  # Start straight into chapter 3:
  python listenbook.py book.pdf --chapter 3

  # Resume the saved session:
  python listenbook.py
        """,
    )
    parser.add_argument("input_path", type=Path, nargs="?", default=None, help="PDF to listen to")
    parser.add_argument(
        "--structurer", choices=["openai", "outline"], default="openai",
        help="How to split the PDF into chapters (default: openai)",
    )
    parser.add_argument(
        "--voice-id", type=str, default=None, metavar="ID",
        help="Use a specific ElevenLabs voice ID",
    )
    parser.add_argument(
        "--voice-library", action="store_true", default=False,
        help="Search the ElevenLabs Voice Library for a narrator when no voice is saved",
    )
    parser.add_argument(
        "--model",
        choices=["eleven_multilingual_v2", "eleven_turbo_v2_5", "eleven_flash_v2_5"],
        default=None,
        help="ElevenLabs TTS model (default: eleven_turbo_v2_5)",
    )
    parser.add_argument(
        "--store", type=Path, default=None, metavar="PATH",
        help="Session file (default: ~/.listenbook/session.json)",
    )
    parser.add_argument(
        "--no-auto-bookmark", action="store_true", default=False,
        help="Do not drop a 'Last Position' bookmark on every pause",
    )
    parser.add_argument(
        "--chapter", type=int, default=None, metavar="N",
        help="Start playing chapter N (1-based) right away",
    )
    parser.add_argument(
        "--dry-run", action="store_true",
        help="Structure the PDF and list chapters without narrating",
    )
    return parser.parse_args(argv)


def print_chapter_list(title, author, chapters, show_chars: bool = True):
    """chapters: iterable of (title, content)."""
    from tts_engine import split_into_sentence_chunks

    chapters = list(chapters)
    print(f"Title:  {title}")
    print(f"Author: {author}")
    print(f"\nFound {len(chapters)} chapters:")
    print("-" * 70)
    total_chars = 0
    total_chunks = 0
    for n, (ch_title, content) in enumerate(chapters, start=1):
        total_chars += len(content)
        if show_chars:
            total_chunks += len(split_into_sentence_chunks(content))
            print(f"  {n:2d}. {ch_title[:50]:<50} {len(content.split()):>6} words  {len(content):>7} chars")
        else:
            print(f"  {n:2d}. {ch_title}")
    print("-" * 70)
    if show_chars:
        print(f"  Total: {total_chars:,} chars | ~{total_chunks} TTS requests")
    print()


def print_bookmarks(book):
    from bookmarks import format_time, is_auto

    if not book.bookmarks:
        print("No bookmarks yet. Press 'm' to save one.")
        return
    print("Bookmarks:")
    for n, bm in enumerate(book.bookmarks, start=1):
        mark = "*" if is_auto(bm) else " "
        print(f" {mark}{n:2d}. [{bm.chapter_index + 1}:{format_time(bm.timestamp)}] {bm.title}")
        print(f"       {bm.text_snippet[:70]!r}")


def print_now_playing(session):
    from bookmarks import BookmarkManager, format_time

    chapter = session.current_chapter
    if chapter is None:
        print("No book loaded. Use 'u FILE' to upload a PDF.")
        return
    if session.is_loading:
        state = "loading narration"
    elif session.is_playing:
        state = "playing"
    else:
        state = "paused"
    book = session.book
    print(f"{book.title} — {book.author}")
    print(
        f"  Chapter {session.current_chapter_index + 1}/{len(book.chapters)}: {chapter.title}"
        f"  [{format_time(session.current_position())} / {format_time(session.duration)}] {state}"
    )
    marks = BookmarkManager.bookmarks_for_chapter(book, session.current_chapter_index)
    if marks:
        print(f"  Bookmarks in this chapter: {', '.join(format_time(b.timestamp) for b in marks)}")


def _print_status(message: str) -> None:
    if message:
        print(f"  [{message}]")


def _confirm(prompt: str) -> bool:
    return input(f"{prompt} [y/N] ").strip().lower() in ("y", "yes")


def _parse_number(arg: str, what: str) -> int | None:
    try:
        return int(arg)
    except ValueError:
        print(f"  Expected a {what} number, got {arg!r}")
        return None


async def command_loop(session) -> None:
    from parsers import read_document
    from session import CLEAR_PROMPT

    print(COMMANDS_HELP)
    while True:
        try:
            line = await asyncio.to_thread(input, "> ")
        except EOFError:
            break
        cmd, _, arg = line.strip().partition(" ")
        arg = arg.strip()

        if cmd in ("q", "quit", "exit"):
            break
        elif cmd in ("h", "help", "?"):
            print(COMMANDS_HELP)
        elif cmd == "p":
            await session.toggle_play()
        elif cmd == "c":
            n = _parse_number(arg, "chapter")
            if n is not None:
                await session.navigate_to_chapter(n - 1)
        elif cmd == "n":
            await session.next_chapter()
        elif cmd == "b":
            await session.previous_chapter()
        elif cmd == "m":
            session.add_bookmark()
        elif cmd == "g":
            n = _parse_number(arg, "bookmark")
            if n is None or session.book is None:
                continue
            if not 1 <= n <= len(session.book.bookmarks):
                print(f"  No bookmark {n}")
                continue
            await session.navigate_to_bookmark(session.book.bookmarks[n - 1])
        elif cmd == "l":
            if session.book is None:
                print("No book loaded.")
                continue
            print_chapter_list(
                session.book.title,
                session.book.author,
                [(ch.title, ch.content) for ch in session.book.chapters],
                show_chars=False,
            )
            print_bookmarks(session.book)
        elif cmd == "s":
            print_now_playing(session)
        elif cmd == "u":
            try:
                raw = read_document(Path(arg).expanduser())
            except (OSError, ValueError) as e:
                print(f"  ERROR: {e}")
                continue
            await session.upload(raw)
        elif cmd == "clear":
            if session.book is None:
                print("Library is already empty.")
                continue
            confirmed = await asyncio.to_thread(_confirm, CLEAR_PROMPT)
            session.clear_book(lambda _prompt: confirmed)
        elif cmd:
            print(f"  Unknown command {cmd!r} (h for help)")


async def run(session, raw: bytes | None, start_chapter: int | None) -> None:
    session.status.subscribe(_print_status)
    try:
        if raw is not None:
            if await session.upload(raw) is None:
                if session.last_error is not None:
                    print(f"ERROR: {session.last_error}")
                return
            print_chapter_list(
                session.book.title,
                session.book.author,
                [(ch.title, ch.content) for ch in session.book.chapters],
            )
        elif not session.restore():
            print("No saved session. Pass a PDF to start listening.")
            return
        else:
            print_now_playing(session)

        if start_chapter is not None:
            if session.book.has_chapter(start_chapter - 1):
                await session.navigate_to_chapter(start_chapter - 1)
            else:
                print(f"ERROR: No chapter {start_chapter} (book has {len(session.book.chapters)} chapters)")
        await command_loop(session)
    finally:
        session.shutdown()


def main():
    args = parse_args()

    from parsers import read_document
    from settings import load_settings
    from structuring import make_structurer

    settings = load_settings()
    if args.store:
        settings.store_path = args.store.expanduser()
    if args.model:
        settings.tts_model = args.model
    if args.no_auto_bookmark:
        settings.auto_bookmark = False

    raw = None
    if args.input_path is not None:
        if not args.input_path.exists():
            print(f"ERROR: File not found: {args.input_path}")
            sys.exit(1)
        try:
            raw = read_document(args.input_path)
        except ValueError as e:
            print(f"ERROR: {e}")
            sys.exit(1)
        if args.structurer == "openai" and not settings.openai_api_key:
            print("ERROR: OPENAI_API_KEY not set.")
            print("Add it to .env:  OPENAI_API_KEY=your_key_here")
            print("Or split chapters offline with --structurer outline")
            sys.exit(1)
    elif args.dry_run:
        print("ERROR: --dry-run needs a PDF to structure.")
        sys.exit(1)

    structure = None
    if args.structurer == "outline" or settings.openai_api_key:
        structure = make_structurer(args.structurer, settings).structure

    if args.dry_run:
        from errors import StructuringError

        print(f"Structuring: {args.input_path}")
        try:
            document = structure(raw)
        except StructuringError as e:
            print(f"ERROR: {e}")
            sys.exit(1)
        print_chapter_list(document.title, document.author, document.chapters)
        print("Dry run complete. No narration requested.")
        return

    if not settings.elevenlabs_api_key:
        print("ERROR: ELEVENLABS_API_KEY not set.")
        print("Add it to .env:  ELEVENLABS_API_KEY=your_key_here")
        sys.exit(1)

    from elevenlabs import ElevenLabs

    from session import ListeningSession
    from session_store import JsonFileStore
    from tts_engine import Narrator
    from voice_setup import setup_voice

    client = ElevenLabs(api_key=settings.elevenlabs_api_key, timeout=settings.request_timeout)
    voice_id = setup_voice(client, args.voice_id or settings.voice_id, use_library=args.voice_library)
    print(f"Voice ID: {voice_id}")
    print(f"Model: {settings.tts_model}")
    print(f"Session file: {settings.store_path}")
    print()

    narrator = Narrator(client, voice_id=voice_id, model_id=settings.tts_model)
    session = ListeningSession(
        synthesize=narrator.synthesize,
        structure=structure,
        store=JsonFileStore(settings.store_path),
        auto_bookmark=settings.auto_bookmark,
    )
    try:
        asyncio.run(run(session, raw, args.chapter))
    except KeyboardInterrupt:
        print()


if __name__ == "__main__":
    main()
