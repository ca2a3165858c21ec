"""
Tests for the request logging middleware.
"""

import pytest
from django.http import HttpResponse
from django.test import RequestFactory

from apps.core.middleware import RequestLoggingMiddleware


@pytest.fixture
def middleware():
    return RequestLoggingMiddleware(lambda request: HttpResponse(status=200))


def test_generates_request_id(middleware):
    request = RequestFactory().get("/v1/fuel-prices/search", {"bbox": "1,2,3,4"})

    response = middleware(request)

    assert len(response["X-Request-ID"]) == 8
    assert response["X-Request-ID"] == request.request_id


def test_echoes_incoming_request_id(middleware):
    request = RequestFactory().get("/health/", HTTP_X_REQUEST_ID="trace-42")

    response = middleware(request)

    assert response["X-Request-ID"] == "trace-42"


def test_logs_request_with_timing(middleware, mocker):
    mock_logger = mocker.patch("apps.core.middleware.logger")
    request = RequestFactory().get(
        "/v1/fuel-prices/search", {"bbox": "1,2,3,4"}, HTTP_X_FORWARDED_FOR="10.0.0.1, 10.0.0.2"
    )

    middleware(request)

    mock_logger.log.assert_called_once()
    level, fmt, method, path, status_code, _ = mock_logger.log.call_args.args
    extra = mock_logger.log.call_args.kwargs["extra"]
    assert level == 20
    assert (method, path, status_code) == ("GET", "/v1/fuel-prices/search", 200)
    assert extra["ip_address"] == "10.0.0.1"
    assert extra["query_params"] == {"bbox": "1,2,3,4"}


def test_server_errors_logged_as_errors(mocker):
    mock_logger = mocker.patch("apps.core.middleware.logger")
    middleware = RequestLoggingMiddleware(lambda request: HttpResponse(status=500))

    middleware(RequestFactory().get("/v1/fuel-prices/search"))

    assert mock_logger.log.call_args.args[0] == 40


def test_liveness_probe_not_logged(middleware, mocker):
    mock_logger = mocker.patch("apps.core.middleware.logger")

    response = middleware(RequestFactory().get("/health/live/"))

    mock_logger.log.assert_not_called()
    assert "X-Request-ID" in response
