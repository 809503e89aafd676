"""Tests for route groups, matching and middleware composition."""

from __future__ import annotations

import pytest

from arietta import ANY_METHOD, Engine, RouteConflictError
from arietta.routing import RouteInfo, Router, RouterGroup


def home(ctx) -> None:
    ctx.string(200, "home")


def other(ctx) -> None:
    ctx.string(200, "other")


# =====================================================================
# Registration
# =====================================================================


class TestRegistration:
    def test_duplicate_route_fails_at_registration(self) -> None:
        group = RouterGroup("user")
        group.get("/info", home)
        with pytest.raises(RouteConflictError, match="GET /user/info"):
            group.get("/info", other)

    def test_duplicate_any_route_fails(self) -> None:
        group = RouterGroup("user")
        group.any("/info", home)
        with pytest.raises(RouteConflictError):
            group.any("/info", other)

    def test_same_path_different_methods_is_fine(self) -> None:
        group = RouterGroup("user")
        group.get("/info", home)
        group.post("/info", other)
        assert set(group.path_handlers["/info"]) == {"GET", "POST"}

    def test_same_path_in_different_groups_is_fine(self) -> None:
        router = Router()
        router.group("a").get("/x", home)
        router.group("b").get("/x", other)
        assert len(router.groups) == 2

    def test_route_decorator(self) -> None:
        group = RouterGroup("api")

        @group.route("put", "/item")
        def put_item(ctx) -> None: ...

        assert group.path_handlers["/item"]["PUT"] is put_item

    def test_routes_listing(self) -> None:
        engine = Engine()
        engine.group("user").get("/info", home)
        engine.group("admin").any("/panel", other)
        assert list(engine.router.routes()) == [
            RouteInfo("GET", "/user/info", "home"),
            RouteInfo(ANY_METHOD, "/admin/panel", "other"),
        ]


# =====================================================================
# Matching
# =====================================================================


class TestMatching:
    def test_exact_match(self) -> None:
        router = Router()
        group = router.group("user")
        group.get("/info", home)
        match = router.match("GET", "/user/info")
        assert match is not None
        assert match.group is group
        assert match.handler is home

    def test_no_normalisation(self) -> None:
        router = Router()
        router.group("user").get("/info", home)
        assert router.match("GET", "/user/info/") is None
        assert router.match("GET", "user/info") is None
        assert router.match("GET", "/USER/info") is None

    def test_query_string_must_match_exactly(self) -> None:
        router = Router()
        group = router.group("user")
        group.get("/info", home)
        group.get("/info?page=2", other)
        assert router.match("GET", "/user/info?page=1") is None
        assert router.match("GET", "/user/info?page=2").handler is other
        assert router.match("GET", "/user/info").handler is home

    def test_method_mismatch_returns_match_without_handler(self) -> None:
        router = Router()
        router.group("user").get("/info", home)
        match = router.match("DELETE", "/user/info")
        assert match is not None
        assert match.handler is None

    def test_any_beats_exact(self) -> None:
        router = Router()
        group = router.group("user")
        group.get("/info", home)
        group.any("/info", other)
        match = router.match("GET", "/user/info")
        assert match.handler is other
        assert match.method == ANY_METHOD

    def test_scan_continues_to_later_groups(self) -> None:
        router = Router()
        router.group("a").get("/x", home)
        router.group("b").get("/y", other)
        match = router.match("GET", "/b/y")
        assert match.handler is other

    def test_first_group_holding_path_is_authoritative(self) -> None:
        router = Router()
        router.group("a").get("/x", home)
        router.group("a").post("/x", other)
        match = router.match("POST", "/a/x")
        assert match is not None
        assert match.handler is None

    def test_method_is_case_insensitive(self) -> None:
        router = Router()
        router.group("a").get("/x", home)
        assert router.match("get", "/a/x").handler is home


# =====================================================================
# Middleware composition
# =====================================================================


def _recorder(calls: list[str], label: str):
    def middleware(next):
        def handler(ctx) -> None:
            calls.append(label + ">")
            next(ctx)
            calls.append("<" + label)

        return handler

    return middleware


class TestChain:
    def test_group_outer_route_inner(self) -> None:
        calls: list[str] = []
        group = RouterGroup("g")
        group.use(_recorder(calls, "G1"), _recorder(calls, "G2"))
        group.get("/x", lambda ctx: calls.append("H"), _recorder(calls, "R1"), _recorder(calls, "R2"))
        group.chain("/x", "GET", group.path_handlers["/x"]["GET"])(None)
        assert calls == ["G1>", "G2>", "R1>", "R2>", "H", "<R2", "<R1", "<G2", "<G1"]

    def test_use_after_registration_still_applies(self) -> None:
        calls: list[str] = []
        group = RouterGroup("g")
        group.get("/x", lambda ctx: calls.append("H"))
        group.use(_recorder(calls, "late"))
        group.chain("/x", "GET", group.path_handlers["/x"]["GET"])(None)
        assert calls == ["late>", "H", "<late"]

    def test_route_middleware_is_per_method(self) -> None:
        calls: list[str] = []
        group = RouterGroup("g")
        group.get("/x", lambda ctx: calls.append("get"), _recorder(calls, "only-get"))
        group.post("/x", lambda ctx: calls.append("post"))
        group.chain("/x", "POST", group.path_handlers["/x"]["POST"])(None)
        assert calls == ["post"]


# =====================================================================
# Dispatch through the engine
# =====================================================================


class TestDispatch:
    def test_not_found(self, serve) -> None:
        engine = Engine()
        engine.group("a").get("/x", home)
        writer = serve(engine, "GET", "/a/y", query=b"k=v")
        assert writer.status == 404
        assert writer.body == b"/a/y?k=v GET not found"

    def test_query_string_on_plain_route_is_not_found(self, serve) -> None:
        engine = Engine()
        engine.group("user").get("/info", home)
        writer = serve(engine, "GET", "/user/info", query=b"x=1")
        assert writer.status == 404
        assert writer.body == b"/user/info?x=1 GET not found"

    def test_not_found_written_once_with_many_groups(self, serve) -> None:
        engine = Engine()
        for name in ("a", "b", "c"):
            engine.group(name).get("/x", home)
        writer = serve(engine, "GET", "/zzz")
        assert writer.body == b"/zzz GET not found"

    def test_not_allowed(self, serve) -> None:
        engine = Engine()
        engine.group("a").get("/x", home)
        writer = serve(engine, "PATCH", "/a/x")
        assert writer.status == 405
        assert writer.body == b"/a/x PATCH not allowed"

    def test_match_runs_handler(self, serve) -> None:
        engine = Engine()
        engine.group("a").get("/x", home)
        writer = serve(engine, "GET", "/a/x")
        assert writer.status == 200
        assert writer.body == b"home"
