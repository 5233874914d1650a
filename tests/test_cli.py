import asyncio

from conftest import make_book
from listenbook import parse_args, print_bookmarks, print_chapter_list, print_now_playing, run
from session_store import STORAGE_KEY, book_to_snapshot


def test_parse_args_defaults() -> None:
    args = parse_args([])
    assert args.input_path is None
    assert args.structurer == "openai"
    assert args.chapter is None
    assert not args.dry_run


def test_parse_args_options() -> None:
    args = parse_args(["book.pdf", "--structurer", "outline", "--chapter", "3", "--no-auto-bookmark"])
    assert args.input_path.name == "book.pdf"
    assert args.structurer == "outline"
    assert args.chapter == 3
    assert args.no_auto_bookmark


def test_chapter_list_counts(capsys) -> None:
    print_chapter_list("Title", "Author", [("One", "a b c"), ("Two", "d e")])
    out = capsys.readouterr().out
    assert "Found 2 chapters" in out
    assert "3 words" in out
    assert "~2 TTS requests" in out


def test_bookmarks_listing_marks_auto(capsys) -> None:
    from bookmarks import BookmarkManager

    manager = BookmarkManager()
    book, _ = manager.add_bookmark(make_book(), 0, 65.0)
    book, _ = manager.add_auto_bookmark(book, 1, 3.0)
    print_bookmarks(book)
    lines = capsys.readouterr().out.splitlines()
    assert lines[1].startswith(" * 1. [2:0:03] Last Position")
    assert lines[3].startswith("   2. [1:1:05] Chapter 1 @ 1:05")


def test_run_without_saved_session(make_session, capsys) -> None:
    session = make_session()
    asyncio.run(run(session, None, None))
    assert "No saved session" in capsys.readouterr().out


def test_run_restores_and_rejects_bad_chapter(make_session, store, monkeypatch, capsys) -> None:
    store.set(STORAGE_KEY, book_to_snapshot(make_book()))
    monkeypatch.setattr("builtins.input", lambda prompt="": "q")
    session = make_session()

    asyncio.run(run(session, None, 9))

    out = capsys.readouterr().out
    assert "[Welcome back! Continuing your reading session.]" in out
    assert "ERROR: No chapter 9 (book has 3 chapters)" in out
    assert session.current_chapter_index == 0


def test_now_playing_lists_chapter_bookmarks(make_session, capsys) -> None:
    from bookmarks import BookmarkManager

    manager = BookmarkManager()
    book, _ = manager.add_bookmark(make_book(), 0, 65.0)
    book, _ = manager.add_bookmark(book, 1, 5.0)
    session = make_session(book)

    print_now_playing(session)

    out = capsys.readouterr().out
    assert "Chapter 1/3: Chapter 1" in out
    assert "Bookmarks in this chapter: 1:05\n" in out
