"""Tests for the import history endpoint."""

import pytest
from unittest.mock import AsyncMock, patch

from api.imports.history import handler
from src.models.import_ticket import ImportTicket
from src.services.import_history import ImportDetails
from src.utils.errors import AuthenticationError
from tests.utils.factories import create_import_ticket_data
from tests.utils.helpers import make_request_handler, response_json, response_status


def get(path: str, headers=None):
    h = make_request_handler(handler, path=path, headers=headers or {"Authorization": "Bearer jwt"})
    h.do_GET()
    return h


@pytest.mark.unit
def test_list_imports():
    tickets = [ImportTicket.model_validate(create_import_ticket_data(status="completed")) for _ in range(2)]

    with patch("api.imports.history.load_history", new_callable=AsyncMock) as mock_load:
        mock_load.return_value = tickets
        h = get("/api/imports/history")

    assert response_status(h) == 200
    imports = response_json(h)["imports"]
    assert [row["id"] for row in imports] == [t.id for t in tickets]
    assert imports[0]["status"] == "completed"
    mock_load.assert_awaited_once_with("jwt", None)


@pytest.mark.unit
def test_import_details():
    ticket = ImportTicket.model_validate(create_import_ticket_data(id="imp-1"))
    details = ImportDetails(ticket=ticket, listings=[{"title": "T2", "import_id": "imp-1"}])

    with patch("api.imports.history.load_history", new_callable=AsyncMock) as mock_load:
        mock_load.return_value = details
        h = get("/api/imports/history?import_id=imp-1")

    assert response_status(h) == 200
    body = response_json(h)
    assert body["ticket"]["id"] == "imp-1"
    assert body["listings"] == [{"title": "T2", "import_id": "imp-1"}]
    mock_load.assert_awaited_once_with("jwt", "imp-1")


@pytest.mark.unit
def test_import_details_not_found():
    with patch("api.imports.history.load_history", new_callable=AsyncMock) as mock_load:
        mock_load.return_value = None
        h = get("/api/imports/history?import_id=imp-x")

    assert response_status(h) == 404
    assert response_json(h) == {"error": "Import not found"}


@pytest.mark.unit
def test_history_unauthorized():
    with patch("api.imports.history.load_history", new_callable=AsyncMock) as mock_load:
        mock_load.side_effect = AuthenticationError("Unauthorized")
        h = get("/api/imports/history", headers={})

    assert response_status(h) == 401
    assert response_json(h) == {"error": "Unauthorized"}
