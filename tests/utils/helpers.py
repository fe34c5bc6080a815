"""Test helper functions and doubles."""

import copy
import json
import re
import uuid
from datetime import datetime, timezone
from io import BytesIO
from typing import Any, Callable, Dict, Optional
from unittest.mock import Mock

from src.utils.errors import SupabaseError


class InMemoryStore:
    """
    Store double with the same four verbs as SupabaseStore.

    Rows live in per-table lists. Failures are injected with fail(); every
    call is recorded in calls as (verb, table, payload).
    """

    def __init__(self):
        self.tables: Dict[str, list] = {}
        self.calls: list = []
        self._failures: list = []

    def fail(
        self,
        verb: str,
        table: str,
        message: str = "database error",
        times: Optional[int] = None,
        when: Optional[Callable[[Any], bool]] = None,
    ) -> None:
        """Make matching calls raise SupabaseError(message); times=None fails forever."""
        self._failures.append({"verb": verb, "table": table, "message": message, "times": times, "when": when})

    def rows(self, table: str, **filters) -> list:
        return [row for row in self.tables.get(table, []) if self._matches(row, filters)]

    def verb_calls(self, verb: str, table: Optional[str] = None) -> list:
        return [call for call in self.calls if call[0] == verb and (table is None or call[1] == table)]

    def _maybe_fail(self, verb: str, table: str, payload: Any) -> None:
        for failure in self._failures:
            if failure["verb"] != verb or failure["table"] != table:
                continue
            if failure["when"] is not None and not failure["when"](payload):
                continue
            if failure["times"] is not None:
                if failure["times"] <= 0:
                    continue
                failure["times"] -= 1
            raise SupabaseError(failure["message"])

    @staticmethod
    def _matches(row: dict, filters: Optional[dict]) -> bool:
        return all(row.get(column) == value for column, value in (filters or {}).items())

    async def select(self, table, filters=None, order=None, descending=False):
        self.calls.append(("select", table, filters))
        self._maybe_fail("select", table, filters)
        rows = [copy.deepcopy(row) for row in self.rows(table, **(filters or {}))]
        if order:
            rows.sort(key=lambda row: row.get(order) or "", reverse=descending)
        return rows

    async def insert(self, table, rows):
        self.calls.append(("insert", table, rows))
        self._maybe_fail("insert", table, rows)
        batch = rows if isinstance(rows, list) else [rows]
        inserted = []
        for row in batch:
            stored = copy.deepcopy(row)
            stored.setdefault("id", uuid.uuid4().hex)
            if table == "imports":
                stored.setdefault("import_date", datetime.now(timezone.utc).isoformat())
            self.tables.setdefault(table, []).append(stored)
            inserted.append(copy.deepcopy(stored))
        return inserted

    async def update(self, table, patch, filters):
        self.calls.append(("update", table, patch))
        self._maybe_fail("update", table, patch)
        updated = []
        for row in self.rows(table, **filters):
            row.update(copy.deepcopy(patch))
            updated.append(copy.deepcopy(row))
        return updated

    async def delete(self, table, filters):
        self.calls.append(("delete", table, filters))
        self._maybe_fail("delete", table, filters)
        kept, removed = [], []
        for row in self.tables.get(table, []):
            (removed if self._matches(row, filters) else kept).append(row)
        self.tables[table] = kept
        return removed


def build_immobilie(
    object_id: Optional[str] = "obj-1",
    title: Optional[str] = "Apartamento T2",
    dreizeiler: Optional[str] = None,
    objektbeschreibung: Optional[str] = None,
    city: Optional[str] = "Lisboa",
    zipcode: Optional[str] = None,
    street: Optional[str] = None,
    country: Optional[str] = None,
    latitude: Optional[str] = None,
    longitude: Optional[str] = None,
    kaufpreis: Optional[str] = None,
    nettokaltmiete: Optional[str] = None,
    wohnflaeche: Optional[str] = None,
    anzahl_zimmer: Optional[str] = None,
    category: Optional[str] = "wohnung",
    attachments: tuple = (),
) -> str:
    """OpenImmo <immobilie> element; attachments are (gruppe, format, pfad) tuples."""
    def tag(name, value):
        return f"<{name}>{value}</{name}>" if value is not None else ""

    objektart = f"<objektkategorie><objektart><{category} /></objektart></objektkategorie>" if category else ""
    geo = "".join([
        tag("plz", zipcode), tag("ort", city), tag("strasse", street), tag("land", country),
        tag("breitengrad", latitude), tag("laengengrad", longitude),
    ])
    anhaenge = "".join(
        f'<anhang gruppe="{gruppe}"><daten>{tag("format", mime)}{tag("pfad", path)}</daten></anhang>'
        for gruppe, mime, path in attachments
    )
    id_attr = f' id="{object_id}"' if object_id is not None else ""

    return (
        f"<immobilie{id_attr}>"
        f"{objektart}"
        f"<geo>{geo}</geo>"
        f"<preise>{tag('kaufpreis', kaufpreis)}{tag('nettokaltmiete', nettokaltmiete)}</preise>"
        f"<flaechen>{tag('wohnflaeche', wohnflaeche)}</flaechen>"
        f"<ausstattung>{tag('anzahl_zimmer', anzahl_zimmer)}</ausstattung>"
        f"<freitexte>{tag('objekttitel', title)}{tag('dreizeiler', dreizeiler)}"
        f"{tag('objektbeschreibung', objektbeschreibung)}</freitexte>"
        f"{'<anhaenge>' + anhaenge + '</anhaenge>' if anhaenge else ''}"
        f"</immobilie>"
    )


def build_openimmo_document(*immobilien: str, namespace: Optional[str] = None) -> str:
    """Wrap <immobilie> elements in an openimmo/anbieter document."""
    xmlns = f' xmlns="{namespace}"' if namespace else ""
    body = "".join(immobilien)
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        f"<openimmo{xmlns}><uebertragung art=\"ONLINE\" />"
        f"<anbieter><openimmo_anid>AGENCY-1</openimmo_anid>{body}</anbieter></openimmo>"
    )


def add_namespace_prefix(document: str, prefix: str = "oi", uri: str = "http://www.openimmo.de") -> str:
    """Same document with every element tag prefixed and the prefix declared on the root."""
    prefixed = re.sub(r"<(/?)([A-Za-z_][\w.-]*)", rf"<\1{prefix}:\2", document)
    return prefixed.replace(f"<{prefix}:openimmo", f'<{prefix}:openimmo xmlns:{prefix}="{uri}"', 1)


def make_request_handler(handler_cls, path: str = "/", headers: Optional[Dict[str, str]] = None, body: bytes = b""):
    """Handler instance wired to in-memory streams without a socket."""
    h = handler_cls.__new__(handler_cls)
    request_headers = dict(headers or {})
    if body:
        request_headers.setdefault("Content-Length", str(len(body)))
    h.headers = request_headers
    h.path = path
    h.rfile = BytesIO(body)
    h.wfile = BytesIO()
    h.send_response = Mock()
    h.send_header = Mock()
    h.end_headers = Mock()
    return h


def response_status(h) -> int:
    return h.send_response.call_args[0][0]


def response_json(h) -> Any:
    h.wfile.seek(0)
    return json.loads(h.wfile.read().decode("utf-8"))
