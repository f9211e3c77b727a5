"""Content extractor tests against synthetic page snapshots."""

import asyncio
import logging
from datetime import datetime, timezone

import pytest
from conftest import FakePage, page_html, tweet_html

from src.extraction.classifier import classify
from src.extraction.dom import parse_document
from src.extraction.errors import ContentNotFoundError, InvalidURLError, NavigationTimeoutError
from src.extraction.extractor import (
    ContentExtractor,
    POST_SELECTOR,
    detect_thread,
    extract_article,
    extract_post,
    find_thread_run,
    is_authored_by,
    is_media_url,
    parse_timestamp,
)
from src.extraction.models import Article, Post, Thread

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
POST_URL = "https://x.com/alice/status/42"
ARTICLE_URL = "https://x.com/i/articles/7"
PHOTO = "https://pbs.twimg.com/media/F1abc.jpg"
AVATAR = "https://pbs.twimg.com/profile_images/99/alice_normal.jpg"


def _extractor(**overrides) -> ContentExtractor:
    kwargs = dict(navigation_timeout=0.05, content_timeout=0.05, settle_delay=0, clock=lambda: NOW)
    kwargs.update(overrides)
    return ContentExtractor(**kwargs)


def _containers(*handles: str):
    html = page_html(*(tweet_html(h, f"post by {h} #{i}") for i, h in enumerate(handles)))
    return parse_document(html, base_url="https://x.com/").select(POST_SELECTOR)


# --- thread detection (sync) ---


def test_detect_thread_leading_run():
    containers = _containers("alice", "alice", "bob", "alice")
    assert detect_thread(containers, "alice") is True
    run = find_thread_run(containers, "alice")
    assert len(run) == 2
    assert [c.select_one('[data-testid="tweetText"]').text() for c in run] == [
        "post by alice #0",
        "post by alice #1",
    ]


def test_detect_thread_interleaved_is_not_thread():
    assert detect_thread(_containers("alice", "bob", "alice"), "alice") is False


def test_detect_thread_single_post():
    assert detect_thread(_containers("alice"), "alice") is False


def test_detect_thread_no_posts():
    assert detect_thread([], "alice") is False


def test_detect_thread_run_after_other_author():
    containers = _containers("bob", "alice", "alice", "alice")
    assert len(find_thread_run(containers, "alice")) == 3


def test_is_authored_by_is_case_insensitive():
    (container,) = _containers("Alice")
    assert is_authored_by(container, "alice")


def test_is_authored_by_ignores_prefix_collision():
    (container,) = _containers("alice_fan")
    assert not is_authored_by(container, "alice")


def test_mention_outside_author_block_does_not_count():
    html = page_html(
        tweet_html("bob", 'replying to <a href="/alice">@alice</a>'),
    )
    (container,) = parse_document(html).select(POST_SELECTOR)
    assert not is_authored_by(container, "alice")


# --- helpers (sync) ---


def test_media_heuristic():
    assert is_media_url(PHOTO)
    assert not is_media_url(AVATAR)
    assert not is_media_url("https://abs-0.twimg.com/emoji/v2/svg/1f600.svg")


def test_parse_timestamp():
    assert parse_timestamp("2024-05-01T10:00:00.000Z") == datetime(2024, 5, 1, 10, tzinfo=timezone.utc)
    assert parse_timestamp("2024-05-01T10:00:00").tzinfo is timezone.utc
    assert parse_timestamp("yesterday") is None
    assert parse_timestamp(None) is None


def test_extract_article_strips_non_content():
    html = """
    <html><body>
      <article>
        <a href="/i/articles/7">permalink</a>
        <a href="/writer">Writer Name</a>
        <div role="heading">Heading Role Title</div>
        <h1>H1 Title</h1>
        <div data-testid="articleContent">
          <p>First paragraph.</p>
          <nav>menu</nav>
          <div role="navigation">crumbs</div>
          <div data-testid="advertisement">buy now</div>
          <aside>related <img src="/aside.png"></aside>
          <div class="login-prompt">log in</div>
          <img src="https://pbs.twimg.com/media/a.jpg" alt="chart">
          <img src="/static/diagram.png">
        </div>
      </article>
    </body></html>
    """
    article = extract_article(parse_document(html, base_url="https://x.com/i/articles/7"), NOW)

    assert article.title == "Heading Role Title"
    assert article.author == "Writer Name"
    assert "First paragraph." in article.body_html
    for junk in ("menu", "crumbs", "buy now", "related", "log in"):
        assert junk not in article.body_html
    assert [(i.src, i.alt) for i in article.images] == [
        ("https://pbs.twimg.com/media/a.jpg", "chart"),
        ("https://x.com/static/diagram.png", ""),
    ]
    assert article.captured_at == NOW


def test_extract_article_falls_back_to_h1_and_defaults():
    html = "<article><h1>Only H1</h1><p>body</p></article>"
    article = extract_article(parse_document(html), NOW)
    assert article.title == "Only H1"
    assert article.author == "Unknown Author"
    assert "<p>body</p>" in article.body_html


def test_extract_article_missing_root():
    with pytest.raises(ContentNotFoundError):
        extract_article(parse_document("<div>nothing here</div>"), NOW)


# --- ContentExtractor.extract (async) ---


@pytest.mark.asyncio
async def test_extract_thread():
    html = page_html(
        tweet_html("alice", "one", datetime_attr="2024-05-01T10:00:00Z", images=(PHOTO,)),
        tweet_html("alice", "two", datetime_attr="2024-05-01T10:01:00Z"),
        tweet_html("bob", "reply"),
        tweet_html("alice", "late reply"),
    )
    page = FakePage(html, url=POST_URL)
    content = await _extractor().extract(page, classify(POST_URL))

    assert isinstance(content, Thread)
    assert content.author == "alice"
    assert content.post_count == 2
    assert [p.text for p in content.posts] == ["one", "two"]
    assert content.captured_at == datetime(2024, 5, 1, 10, tzinfo=timezone.utc)
    assert [i.src for i in content.posts[0].images] == [PHOTO]
    assert content.posts[1].images == ()
    assert page.navigated_to == POST_URL
    assert page.waited_for == [POST_SELECTOR]
    assert page.close_calls == 1


@pytest.mark.asyncio
async def test_extract_thread_without_timestamp_uses_extraction_time():
    html = page_html(
        tweet_html("alice", "one", datetime_attr=None),
        tweet_html("alice", "two"),
    )
    content = await _extractor().extract(FakePage(html, url=POST_URL), classify(POST_URL))
    assert isinstance(content, Thread)
    assert content.captured_at == NOW
    assert content.posts[0].posted_at == NOW


@pytest.mark.asyncio
async def test_interleaved_authors_fall_back_to_first_post():
    html = page_html(
        tweet_html("alice", "original", images=(PHOTO,)),
        tweet_html("bob", "reply"),
        tweet_html("alice", "answer"),
    )
    page = FakePage(html, url=POST_URL)
    content = await _extractor().extract(page, classify(POST_URL))

    assert isinstance(content, Post)
    assert content.text == "original"
    assert "Alice" in content.author
    assert content.posted_at == datetime(2024, 5, 1, 10, tzinfo=timezone.utc)
    assert [i.src for i in content.images] == [PHOTO]
    assert page.close_calls == 1


@pytest.mark.asyncio
async def test_single_post():
    html = page_html(tweet_html("alice", "just one", images=(PHOTO, AVATAR)))
    content = await _extractor().extract(FakePage(html, url=POST_URL), classify(POST_URL))
    assert isinstance(content, Post)
    assert content.text == "just one"
    assert [i.src for i in content.images] == [PHOTO]


@pytest.mark.asyncio
async def test_post_without_author_block_uses_username():
    html = page_html(
        '<article data-testid="tweet"><a href="/alice">x</a>'
        '<div data-testid="tweetText">line one<br>line two</div></article>'
    )
    content = await _extractor().extract(FakePage(html, url=POST_URL), classify(POST_URL))
    assert isinstance(content, Post)
    assert content.author == "alice"
    assert content.text == "line one\nline two"
    assert content.posted_at == NOW


@pytest.mark.asyncio
async def test_extract_article_page():
    html = "<article><h1>Title</h1><a href='/bob'>Bob</a><p>text</p></article>"
    page = FakePage(html, url=ARTICLE_URL)
    content = await _extractor().extract(page, classify(ARTICLE_URL))
    assert isinstance(content, Article)
    assert content.title == "Title"
    assert content.author == "Bob"
    assert page.waited_for == ["article"]
    assert page.close_calls == 1


@pytest.mark.asyncio
async def test_marker_absent_but_content_recoverable():
    html = page_html(tweet_html("alice", "late render"))
    page = FakePage(html, url=POST_URL, marker_present=False)
    content = await _extractor().extract(page, classify(POST_URL))
    assert isinstance(content, Post)
    assert content.text == "late render"
    assert page.close_calls == 1


@pytest.mark.asyncio
async def test_marker_absent_and_nothing_recoverable():
    page = FakePage(page_html("<div>Something went wrong</div>"), url=POST_URL, marker_present=False)
    with pytest.raises(ContentNotFoundError):
        await _extractor().extract(page, classify(POST_URL))
    assert page.snapshots == 1
    assert page.close_calls == 1


@pytest.mark.asyncio
async def test_hanging_marker_wait_is_bounded():
    html = page_html(tweet_html("alice", "eventually"))
    page = FakePage(html, url=POST_URL, hang_on_wait=True)
    content = await asyncio.wait_for(_extractor().extract(page, classify(POST_URL)), timeout=5)
    assert isinstance(content, Post)
    assert page.close_calls == 1


@pytest.mark.asyncio
async def test_hanging_navigation_times_out():
    page = FakePage(url=POST_URL, hang_on_navigate=True)
    with pytest.raises(NavigationTimeoutError):
        await asyncio.wait_for(_extractor().extract(page, classify(POST_URL)), timeout=5)
    assert page.waited_for == []
    assert page.snapshots == 0
    assert page.close_calls == 1


@pytest.mark.asyncio
async def test_navigation_error_propagates_and_closes_page():
    page = FakePage(url=POST_URL, navigate_error=NavigationTimeoutError("slow"))
    with pytest.raises(NavigationTimeoutError) as excinfo:
        await _extractor().extract(page, classify(POST_URL))
    assert excinfo.value.url == POST_URL
    assert page.close_calls == 1


@pytest.mark.asyncio
async def test_invalid_classification_closes_page_without_navigating():
    page = FakePage()
    with pytest.raises(InvalidURLError):
        await _extractor().extract(page, classify("https://example.com/a/status/1"))
    assert page.navigated_to is None
    assert page.close_calls == 1


@pytest.mark.asyncio
async def test_settle_delay_is_awaited(monkeypatch):
    delays = []

    async def fake_sleep(seconds):
        delays.append(seconds)

    monkeypatch.setattr("src.extraction.extractor.asyncio.sleep", fake_sleep)
    html = page_html(tweet_html("alice", "hi"))
    await _extractor(settle_delay=2.0).extract(FakePage(html, url=POST_URL), classify(POST_URL))
    assert delays == [2.0]


@pytest.mark.asyncio
async def test_failure_enters_failed_state(caplog):
    caplog.set_level(logging.DEBUG, logger="src.extraction.extractor")
    page = FakePage(page_html("<div>Something went wrong</div>"), url=POST_URL, marker_present=False)
    with pytest.raises(ContentNotFoundError):
        await _extractor().extract(page, classify(POST_URL))

    states = [r.state for r in caplog.records if r.getMessage() == "extraction state"]
    assert states[-1] == "failed"
    (failure,) = [r for r in caplog.records if r.getMessage() == "extraction failed"]
    assert failure.failed_in == "extracting"


# --- innerText-style layout ---


def test_author_block_keeps_line_breaks():
    html = (
        '<article data-testid="tweet">'
        '<div data-testid="User-Name">'
        '<div><a href="/alice"><span>Alice Smith</span></a></div>'
        "<div>"
        '<div><a href="/alice"><span>@alice</span></a></div>'
        "<div><span>·</span></div>"
        '<div><a href="/alice/status/1"><time datetime="2024-05-01T10:00:00Z">May 1</time></a></div>'
        "</div>"
        "</div>"
        '<div data-testid="tweetText"><div>first block</div><div>second <b>block</b></div></div>'
        "</article>"
    )
    (container,) = parse_document(html, base_url="https://x.com/").select(POST_SELECTOR)
    post = extract_post(container, "alice", NOW)

    assert post.author == "Alice Smith\n@alice\n·\nMay 1"
    assert post.text == "first block\nsecond block"
    assert post.posted_at == datetime(2024, 5, 1, 10, tzinfo=timezone.utc)


def test_text_ignores_source_indentation_and_scripts():
    html = """
    <div id="root">
      <p>one</p>
      <script>var hidden = 1;</script>
      <p>two</p>
      <!-- note -->
    </div>
    """
    assert parse_document(html).select_one("#root").text() == "one\ntwo"
