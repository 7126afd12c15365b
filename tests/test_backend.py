from __future__ import annotations

import pytest

from quvo._api.backend import (
    bays_to_bay_data,
    client_endpoint,
    dashboard_params,
    facility_query_params,
    parse_dashboard_snapshot,
)
from quvo._api.login import build_login_payload, parse_login_response
from quvo._transport import TransportResponse
from quvo.exceptions import QuvoAuthenticationError, QuvoTransportError


def test_client_endpoint() -> None:
    assert client_endpoint("vulcan") == "/api/vulcan"
    assert client_endpoint("vulcan", "facilities") == "/api/vulcan/facilities"


def test_facility_query_params_accept_both_spellings() -> None:
    assert facility_query_params(None) == {}
    assert facility_query_params({"product_code": "57", "state": "FL", "district": ""}) == {
        "productCode": "57",
        "state": "FL",
    }
    assert facility_query_params({"productCode": 57, "limit": 5}) == {"limit": "5", "productCode": "57"}
    with pytest.raises(ValueError):
        facility_query_params({"colour": "red"})


def test_dashboard_params() -> None:
    assert dashboard_params(None) is None
    assert dashboard_params("p-1") == {"project": "p-1"}


def test_parse_dashboard_snapshot_rejects_non_objects() -> None:
    with pytest.raises(QuvoTransportError):
        parse_dashboard_snapshot(["not", "a", "dict"])


def test_bays_to_bay_data_tolerates_missing_list() -> None:
    assert bays_to_bay_data({}) == {"records": [], "storages": []}
    assert bays_to_bay_data(None) == {"records": [], "storages": []}


def test_login_payload_accepts_username_alias() -> None:
    assert build_login_payload({"username": "rep", "password": "pw"}) == {"email": "rep", "password": "pw"}
    with pytest.raises(QuvoAuthenticationError):
        build_login_payload({"email": "rep"})


def test_parse_login_response_rejects_error_status() -> None:
    with pytest.raises(QuvoAuthenticationError) as exc_info:
        parse_login_response(TransportResponse(status=401, data={"error": "nope"}))
    assert exc_info.value.status_code == 401

    session = parse_login_response(
        TransportResponse(status=200, data={"token": "t", "user": {"id": 1, "role": "viewer"}})
    )
    assert session.token == "t"
    assert session.authorization_header == "Bearer t"
