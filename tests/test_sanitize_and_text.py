"""Tests for HTML sanitizing and text helpers."""

from baseplate.sanitize import sanitize_editor_html, sanitize_notification_html
from baseplate.text import is_http_url, like_pattern, normalize_whitespace, truncate


def test_notification_policy_strips_scripts_and_images():
    html = '<p onclick="x()">Hi <strong>there</strong></p><script>alert(1)</script><img src="a.png">'
    cleaned = sanitize_notification_html(html)
    assert "<script>" not in cleaned
    assert "alert(1)" not in cleaned
    assert "onclick" not in cleaned
    assert "<img" not in cleaned
    assert "<strong>there</strong>" in cleaned


def test_links_get_safe_rel_and_bad_schemes_are_dropped():
    cleaned = sanitize_notification_html('<a href="https://example.com" target="_blank">ok</a>')
    assert 'href="https://example.com"' in cleaned
    assert 'rel="noopener noreferrer"' in cleaned

    cleaned = sanitize_notification_html('<a href="javascript:alert(1)">bad</a>')
    assert "javascript" not in cleaned


def test_editor_policy_keeps_rich_content():
    html = '<h5>Title</h5><blockquote>q</blockquote><img src="https://cdn.test/a.png" alt="a"><table><tr><td colspan="2">x</td></tr></table>'
    cleaned = sanitize_editor_html(html)
    assert "<h5>Title</h5>" in cleaned
    assert "<blockquote>q</blockquote>" in cleaned
    assert 'src="https://cdn.test/a.png"' in cleaned
    assert 'colspan="2"' in cleaned


def test_editor_policy_keeps_data_urls_for_inline_images_only():
    cleaned = sanitize_editor_html('<img src="data:image/png;base64,iVBORw0KGgo=" alt="dot">')
    assert 'src="data:image/png;base64,iVBORw0KGgo="' in cleaned

    cleaned = sanitize_editor_html('<a href="data:text/html;base64,PHNjcmlwdD4=">open</a>')
    assert "data:" not in cleaned
    assert ">open</a>" in cleaned

    cleaned = sanitize_editor_html('<img src="data:text/html;base64,PHNjcmlwdD4=">')
    assert "data:" not in cleaned


def test_text_helpers():
    assert normalize_whitespace("  a \n\t b  ") == "a b"
    assert like_pattern("50%_off") == "%50\\%\\_off%"
    assert truncate("abcdefghij", 6) == "abc..."
    assert truncate("short", 10) == "short"
    assert is_http_url("https://example.com/path")
    assert not is_http_url("ftp://example.com")
    assert not is_http_url("example.com")
