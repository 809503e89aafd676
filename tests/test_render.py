"""Tests for response renderers and the response writer."""

from __future__ import annotations

import pytest
from pydantic import BaseModel

from arietta import RedirectStatusError, RenderError, ResponseWriter
from arietta.errors import TemplateNotFoundError
from arietta.render import JSON, XML, HTMLLiteral, HTMLTemplate, Redirect, Text, valid_redirect_status
from arietta.templating import Templates


class Item(BaseModel):
    name: str
    price: float


def _render(r, status: int = 200) -> ResponseWriter:
    w = ResponseWriter()
    r.write_content_type(w)
    r.write_header(status, w)
    r.render(w)
    return w


# =====================================================================
# Variants
# =====================================================================


def test_html_literal() -> None:
    w = _render(HTMLLiteral("<h1>hi</h1>"), 202)
    assert w.status == 202
    assert w.get_header("content-type") == "text/html; charset=utf-8"
    assert w.body == b"<h1>hi</h1>"


def test_html_template() -> None:
    templates = Templates.from_sources({"hello.html": "Hello {{ name }}!"})
    w = _render(HTMLTemplate(templates, "hello.html", {"name": "<ada>"}))
    assert w.body == b"Hello &lt;ada&gt;!"


def test_html_template_non_mapping_data() -> None:
    templates = Templates.from_sources({"n.html": "{{ data }}"})
    assert _render(HTMLTemplate(templates, "n.html", 42)).body == b"42"


def test_html_template_unknown_name() -> None:
    templates = Templates.from_sources({"a.html": "a"})
    with pytest.raises(TemplateNotFoundError):
        _render(HTMLTemplate(templates, "b.html"))


def test_html_template_execution_failure() -> None:
    templates = Templates.from_sources({"bad.html": "{{ missing.attr.deeper }}"})
    with pytest.raises(RenderError):
        _render(HTMLTemplate(templates, "bad.html"))


def test_json_handles_models() -> None:
    w = _render(JSON({"items": [Item(name="w", price=1.5)]}))
    assert w.get_header("content-type") == "application/json; charset=utf-8"
    assert w.body == b'{"items":[{"name":"w","price":1.5}]}'


def test_json_unserializable() -> None:
    with pytest.raises(RenderError, match="cannot encode JSON"):
        _render(JSON({"x": object()}))


def test_xml_model_root_is_class_name() -> None:
    w = _render(XML(Item(name="w", price=2.0)))
    assert w.get_header("content-type") == "application/xml; charset=utf-8"
    assert w.body == b"<Item><name>w</name><price>2.0</price></Item>"


def test_xml_mapping_with_lists() -> None:
    w = _render(XML({"tag": ["a", "b"], "ok": True, "none": None}, root="result"))
    assert w.body == b"<result><tag>a</tag><tag>b</tag><ok>true</ok><none /></result>"


def test_text_with_and_without_values() -> None:
    assert _render(Text("plain %s")).body == b"plain %s"
    w = _render(Text("%s is %d", ("answer", 42)))
    assert w.get_header("content-type") == "text/plain; charset=utf-8"
    assert w.body == b"answer is 42"


def test_text_bad_format() -> None:
    with pytest.raises(RenderError):
        _render(Text("%d", ("nope",)))


def test_content_type_is_not_overridden() -> None:
    w = ResponseWriter()
    w.set_header("Content-Type", "application/vnd.custom+json")
    JSON({}).write_content_type(w)
    assert w.get_header("content-type") == "application/vnd.custom+json"


# =====================================================================
# Redirect
# =====================================================================


@pytest.mark.parametrize("status", [201, 300, 301, 302, 303, 307, 308])
def test_redirect_valid_statuses(make_request, status: int) -> None:
    w = _render(Redirect(status, make_request("GET", "/a"), "/b"), status)
    assert w.status == status
    assert w.get_header("location") == "/b"


@pytest.mark.parametrize("status", [200, 299, 309, 404, 500])
def test_redirect_invalid_statuses(make_request, status: int) -> None:
    with pytest.raises(RedirectStatusError, match=f"cannot redirect with status code {status}"):
        _render(Redirect(status, make_request("GET", "/a"), "/b"), status)


def test_redirect_ignores_content_type_and_header_steps(make_request) -> None:
    w = ResponseWriter()
    r = Redirect(302, make_request("POST", "/a"), "/b")
    r.write_content_type(w)
    r.write_header(302, w)
    assert not w.written
    assert w.headers == []
    r.render(w)
    assert w.status == 302
    assert w.body == b""


def test_redirect_get_has_link_body(make_request) -> None:
    w = _render(Redirect(301, make_request("GET", "/a"), "/b?x=1&y=2"))
    assert w.body == b'<a href="/b?x=1&amp;y=2">Moved Permanently</a>.\n'


def test_valid_redirect_status() -> None:
    assert valid_redirect_status(201)
    assert not valid_redirect_status(200)


# =====================================================================
# ResponseWriter
# =====================================================================


class TestResponseWriter:
    def test_first_status_wins(self) -> None:
        w = ResponseWriter()
        w.write_header(201)
        w.write_header(500)
        assert w.status == 201

    def test_write_implies_ok(self) -> None:
        w = ResponseWriter()
        w.write("x")
        assert w.status == 200

    @pytest.mark.asyncio
    async def test_send(self) -> None:
        w = ResponseWriter()
        w.set_header("X-Thing", "1")
        w.write_header(418)
        w.write(b"teapot")
        sent: list[dict] = []

        async def send(message: dict) -> None:
            sent.append(message)

        await w.send(send)
        assert sent[0]["status"] == 418
        assert (b"x-thing", b"1") in sent[0]["headers"]
        assert (b"content-length", b"6") in sent[0]["headers"]
        assert sent[1] == {"type": "http.response.body", "body": b"teapot"}
