import inspect

import pytest

from cognito_edge_auth import edge
from conftest import HOST


def test_redirect_always_carries_no_cache_headers():
    response = edge.redirect("https://example.com/next")

    assert response == {
        "status": "302",
        "headers": {
            "location": [{"key": "Location", "value": "https://example.com/next"}],
            "cache-control": [
                {"key": "Cache-Control", "value": "no-cache, no-store, max-age=0, must-revalidate"}
            ],
            "pragma": [{"key": "Pragma", "value": "no-cache"}],
        },
    }


def test_redirect_has_no_cache_opt_out():
    assert list(inspect.signature(edge.redirect).parameters) == ["location", "set_cookies"]


def test_redirect_lists_each_cookie():
    response = edge.redirect("/", set_cookies=["a=1", "b=2"])

    assert response["headers"]["set-cookie"] == [
        {"key": "Set-Cookie", "value": "a=1"},
        {"key": "Set-Cookie", "value": "b=2"},
    ]
    assert "pragma" in response["headers"]


def test_is_response_tells_redirects_from_requests(make_event):
    request = make_event()["Records"][0]["cf"]["request"]

    assert edge.is_response(edge.redirect("/"))
    assert not edge.is_response(request)


def test_request_from_event_rejects_other_shapes():
    with pytest.raises(ValueError):
        edge.request_from_event({"Records": []})


def test_host_of_reads_host_header(make_event):
    request = edge.request_from_event(make_event())
    assert edge.host_of(request) == HOST
