"""REPL for the feedview terminal front-end."""

from __future__ import annotations

import asyncio
import os
import sys
import threading
import webbrowser
from typing import TextIO

from feedview import formatting
from feedview.models import SortField
from feedview.services.coordinator import ViewStateCoordinator

_PALETTES = {
    # dark terminal: bright accents
    True: {"accent": "\033[95m", "dim": "\033[90m", "ok": "\033[92m", "bad": "\033[91m", "star": "\033[93m"},
    # light terminal: darker accents
    False: {"accent": "\033[35m", "dim": "\033[37m", "ok": "\033[32m", "bad": "\033[31m", "star": "\033[33m"},
}
_RESET = "\033[0m"

_SORT_ALIASES = {
    "new": SortField.CREATED_AT,
    "newest": SortField.CREATED_AT,
    "created_at": SortField.CREATED_AT,
    "top": SortField.UPVOTES,
    "upvotes": SortField.UPVOTES,
    "comments": SortField.NUM_COMMENTS,
    "num_comments": SortField.NUM_COMMENTS,
}


def render(view: ViewStateCoordinator) -> str:
    """Render the coordinator's current state as terminal text."""
    state = view.state
    c = _PALETTES[state.dark_mode]
    lines: list[str] = []

    badge = c["ok"] if state.connected else c["bad"]
    header = f"  {badge}● {formatting.connection_label(state.connected)}{_RESET}"
    updated = formatting.updated_label(state.last_updated)
    if updated:
        header += f"  {c['dim']}{updated}{_RESET}"
    params = state.params
    header += (
        f"  {c['dim']}[{formatting.SORT_LABELS[params.sort_by]} {params.sort_order.value}]"
        f" Favorites ({view.favorite_count}){' only' if state.favorites_only else ''}{_RESET}"
    )
    if params.search:
        header += f"  search: {params.search!r}"
    lines.append(header)

    if state.stats is not None:
        lines.append(f"  {c['dim']}{formatting.stats_line(state.stats)}{_RESET}")
    lines.append("")

    status = view.status
    if status == "loading":
        lines.append("  Loading...")
        return "\n".join(lines)

    if status == "error":
        lines.append(f"  {c['bad']}Failed to load posts{_RESET}")
        lines.append(f"  {state.error}")
        lines.append("  Type /retry to try again.")
        return "\n".join(lines)

    if status == "empty":
        lines.append(f"  {view.empty_title}")
        lines.append(f"  {c['dim']}{view.empty_message}{_RESET}")
    else:
        for i, post in enumerate(view.displayed_posts, 1):
            star = f"{c['star']}★{_RESET}" if view.is_favorite(post.reddit_id) else " "
            lines.append(f"  {i:>2}. {star} {c['accent']}r/{post.subreddit}{_RESET} {post.title}")
            lines.append(
                f"      {c['dim']}▲ {post.upvotes:,}  💬 {post.num_comments}  "
                f"u/{post.author} | {formatting.time_ago(post.created_at)}{_RESET}"
            )
            text = formatting.excerpt(post)
            if text:
                lines.append(f"      {text}")

    if view.show_pagination:
        lines.append("")
        prev_hint = "/prev" if view.can_go_previous else "    "
        next_hint = "/next" if view.can_go_next else "    "
        lines.append(
            f"  {prev_hint}  {formatting.page_label(params.page, state.pagination.total_pages)}  {next_hint}"
        )

    return "\n".join(lines)


class LineReader:
    """
    Lines from a text stream, delivered through an asyncio.Queue.

    The stream's file descriptor is watched with loop.add_reader, so a
    pending read never occupies a thread the event loop waits on at
    shutdown. Where the loop cannot watch the descriptor (Windows, regular
    files) a daemon thread reads instead. readline() returns None at EOF.
    """

    def __init__(self, stream: TextIO | None = None):
        self.stream = stream or sys.stdin
        self.queue: asyncio.Queue[str | None] = asyncio.Queue()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._fd: int | None = None
        self._buffer = b""

    def start(self) -> None:
        self._loop = asyncio.get_running_loop()
        try:
            fd = self.stream.fileno()
            self._loop.add_reader(fd, self._on_readable)
        except (NotImplementedError, OSError, ValueError):
            threading.Thread(target=self._read_blocking, name="feedview-stdin", daemon=True).start()
        else:
            self._fd = fd

    async def readline(self) -> str | None:
        return await self.queue.get()

    def close(self) -> None:
        if self._fd is not None and self._loop is not None:
            self._loop.remove_reader(self._fd)
            self._fd = None

    def _decode(self, raw: bytes) -> str:
        return raw.decode(getattr(self.stream, "encoding", None) or "utf-8", errors="replace")

    def _on_readable(self) -> None:
        chunk = os.read(self._fd, 4096)
        if not chunk:
            self.close()
            if self._buffer:
                self.queue.put_nowait(self._decode(self._buffer))
                self._buffer = b""
            self.queue.put_nowait(None)
            return

        self._buffer += chunk
        *lines, self._buffer = self._buffer.split(b"\n")
        for line in lines:
            self.queue.put_nowait(self._decode(line))

    def _read_blocking(self) -> None:
        for line in self.stream:
            if not self._deliver(line.rstrip("\n")):
                return
        self._deliver(None)

    def _deliver(self, line: str | None) -> bool:
        try:
            self._loop.call_soon_threadsafe(self.queue.put_nowait, line)
        except RuntimeError:
            # Loop already closed
            return False
        return True


class Repl:
    """Interactive REPL over a ViewStateCoordinator."""

    def __init__(self, view: ViewStateCoordinator, stdin: TextIO | None = None):
        self.view = view
        self.running = True
        self._last_render = ""
        self._reader = LineReader(stdin)

    async def start(self):
        """Mount the view and read commands until /quit or EOF."""
        self.view.subscribe(self._on_state)
        await self.view.start()

        self._reader.start()
        try:
            while self.running:
                print("feed > ", end="", flush=True)
                raw = await self._reader.readline()
                if raw is None:
                    print()
                    break

                line = raw.strip()
                if not line:
                    continue

                if line.startswith("/"):
                    await self.handle_command(line)
                else:
                    # Bare text is a search
                    self.view.set_search_text(line)
        finally:
            self._reader.close()

        await self.view.dispose()

    def _on_state(self, state) -> None:
        if state.loading:
            return
        text = render(self.view)
        if text != self._last_render:
            self._last_render = text
            print()
            print(text)

    async def handle_command(self, line: str):
        """Handle REPL commands."""
        parts = line.split(maxsplit=1)
        cmd = parts[0].lower()
        arg = parts[1] if len(parts) > 1 else None

        if cmd == "/quit":
            self.running = False
            print("Goodbye.")
        elif cmd == "/search":
            self.view.set_search_text(arg or "")
        elif cmd == "/sort":
            self._set_sort(arg)
        elif cmd == "/order":
            self.view.toggle_sort_order()
        elif cmd == "/next":
            if not self.view.can_go_next:
                print("  Already on the last page.")
            self.view.next_page()
        elif cmd == "/prev":
            if not self.view.can_go_previous:
                print("  Already on the first page.")
            self.view.previous_page()
        elif cmd == "/page":
            try:
                self.view.go_to_page(int(arg or ""))
            except ValueError:
                print("Usage: /page <number>")
        elif cmd == "/fav":
            self._toggle_favorite(arg)
        elif cmd == "/favorites":
            self.view.toggle_favorites_only()
        elif cmd == "/open":
            self._open_post(arg)
        elif cmd == "/dark":
            enabled = self.view.toggle_dark_mode()
            print(f"  Dark mode: {'on' if enabled else 'off'}.")
        elif cmd == "/refresh":
            if not await self.view.refresh():
                print("  Refresh failed. Showing the last loaded posts.")
        elif cmd == "/retry":
            self.view.retry()
        elif cmd == "/help":
            self._show_help()
        else:
            print(f"Unknown command: {cmd}")
            print("Type /help for available commands.")

    def _set_sort(self, arg: str | None):
        field = _SORT_ALIASES.get((arg or "").lower())
        if field is None:
            print("Usage: /sort new|top|comments")
            return
        self.view.set_sort_by(field)

    def _post_at(self, index: str | None):
        try:
            idx = int(index or "") - 1
        except ValueError:
            print("  Invalid number.")
            return None
        posts = self.view.displayed_posts
        if 0 <= idx < len(posts):
            return posts[idx]
        print("  Invalid index. Pick a number from the list.")
        return None

    def _toggle_favorite(self, index: str | None):
        post = self._post_at(index)
        if post is None:
            return
        if self.view.toggle_favorite(post.reddit_id):
            print(f"  Added to favorites: {post.title}")
        else:
            print(f"  Removed from favorites: {post.title}")

    def _open_post(self, index: str | None):
        post = self._post_at(index)
        if post is None:
            return
        print(f"  Opening {post.url}")
        webbrowser.open(post.url)

    def _show_help(self):
        """Show help message."""
        print("""
  REPL Commands:
    <text>             - Search posts by title, author or content
    /search [text]     - Same as typing text; empty clears the search
    /sort new|top|comments
                       - Sort by newest, most upvoted or most comments
    /order             - Flip ascending/descending
    /next, /prev       - Move between pages
    /page <n>          - Jump to page n
    /fav <n>           - Toggle favorite for post n
    /favorites         - Show only favorites on this page
    /open <n>          - Open post n in the browser
    /dark              - Toggle dark mode
    /refresh           - Ask the server to refresh its sources
    /retry             - Retry the last failed request
    /help              - Show this help
    /quit              - Exit
""")
