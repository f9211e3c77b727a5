"""Shared test helpers: a browser-free page double and synthetic X markup."""

from __future__ import annotations

import asyncio

from src.extraction.dom import DomNode, parse_document


class FakePage:
    """Stands in for :class:`PageHandle`; serves a fixed HTML snapshot.

    ``close_calls`` counts releases so tests can assert the page is
    closed exactly once.
    """

    def __init__(
        self,
        html: str = "",
        *,
        url: str = "https://x.com/",
        marker_present: bool = True,
        hang_on_wait: bool = False,
        hang_on_navigate: bool = False,
        navigate_error: Exception | None = None,
    ) -> None:
        self.html = html
        self.url = url
        self.marker_present = marker_present
        self.hang_on_wait = hang_on_wait
        self.hang_on_navigate = hang_on_navigate
        self.navigate_error = navigate_error
        self.navigated_to: str | None = None
        self.waited_for: list[str] = []
        self.snapshots = 0
        self.close_calls = 0

    async def navigate(self, url: str, *, timeout: float, wait_until: str = "networkidle") -> None:
        self.navigated_to = url
        if self.navigate_error is not None:
            raise self.navigate_error
        if self.hang_on_navigate:
            await asyncio.sleep(3600)

    async def wait_for(self, selector: str, *, timeout: float) -> bool:
        self.waited_for.append(selector)
        if self.hang_on_wait:
            await asyncio.sleep(3600)
        return self.marker_present

    async def snapshot(self) -> DomNode:
        self.snapshots += 1
        return parse_document(self.html, base_url=self.url)

    async def close(self) -> None:
        self.close_calls += 1


def tweet_html(
    handle: str,
    text: str = "",
    *,
    display_name: str | None = None,
    datetime_attr: str | None = "2024-05-01T10:00:00.000Z",
    images: tuple[str, ...] = (),
) -> str:
    """Markup shaped like one rendered post container."""
    name = display_name or handle.title()
    time_el = f'<time datetime="{datetime_attr}">May 1</time>' if datetime_attr else ""
    imgs = "".join(f'<img src="{src}" alt="image">' for src in images)
    return (
        '<article data-testid="tweet">'
        f'<img src="https://pbs.twimg.com/profile_images/1/{handle}_normal.jpg" alt="avatar">'
        '<div data-testid="User-Name">'
        f'<a href="/{handle}">{name}</a>'
        f'<a href="/{handle}/status/1">{time_el}</a>'
        "</div>"
        f'<div data-testid="tweetText"><span>{text}</span></div>'
        f"{imgs}"
        "</article>"
    )


def page_html(*fragments: str) -> str:
    return "<html><body><main>" + "".join(fragments) + "</main></body></html>"

