"""Presentación de respuestas: vista JSON por defecto o exportación XML/CSV.

La representación alternativa se pide con el header ``Accept``
(``application/xml`` o ``text/csv``) y siempre entrega datos completos.
"""
import xml.etree.ElementTree as ET
from datetime import datetime, timezone
from enum import StrEnum
from io import BytesIO
from typing import Any

import pandas as pd
from fastapi import Request
from fastapi.responses import JSONResponse, Response

from app.services.listing import Listing

CACHE_HEADERS = {"Cache-Control": "no-cache, no-store, must-revalidate", "Pragma": "no-cache", "Expires": "0"}


class Representation(StrEnum):
    default = "default"
    xml = "xml"
    csv = "csv"

    @property
    def is_export(self) -> bool:
        return self is not Representation.default


def negotiate(request: Request) -> Representation:
    accept = (request.headers.get("accept") or "").lower()
    if "application/xml" in accept or "text/xml" in accept:
        return Representation.xml
    if "text/csv" in accept:
        return Representation.csv
    return Representation.default


def render_view(view: str, *, flash: dict | None = None, status_code: int = 200, **context: Any) -> JSONResponse:
    content = {"view": view, "flash": flash or {}, **context}
    return JSONResponse(content=content, status_code=status_code, headers=CACHE_HEADERS)


def render_listing(
    view: str,
    listing: Listing,
    *,
    collection: str = "accounts",
    flash: dict | None = None,
    status_code: int = 200,
    **context: Any,
) -> JSONResponse:
    prefs = listing.preferences
    return render_view(
        view,
        flash=flash,
        status_code=status_code,
        **{collection: [r.to_dict() for r in listing.items]},
        current_page=listing.page,
        current_query=listing.query,
        per_page=prefs.per_page,
        outline=prefs.outline,
        sort_by=prefs.sort_by,
        pagination=listing.pagination(),
        **context,
    )


def _xml_value(element: ET.Element, value: Any) -> None:
    if value is None:
        element.set("nil", "true")
    elif isinstance(value, bool):
        element.set("type", "boolean")
        element.text = "true" if value else "false"
    elif isinstance(value, int):
        element.set("type", "integer")
        element.text = str(value)
    elif isinstance(value, (list, tuple, set)):
        element.set("type", "array")
        for item in value:
            _xml_value(ET.SubElement(element, "item"), item)
    else:
        element.text = str(value)


def _record_element(parent: ET.Element | None, tag: str, row: dict) -> ET.Element:
    node = ET.Element(tag) if parent is None else ET.SubElement(parent, tag)
    for key, value in row.items():
        _xml_value(ET.SubElement(node, key.replace("_", "-")), value)
    return node


def to_xml(rows: list[dict], root: str, item: str) -> bytes:
    element = ET.Element(root, type="array")
    for row in rows:
        _record_element(element, item, row)
    return ET.tostring(element, encoding="utf-8", xml_declaration=True)


def record_to_xml(row: dict, item: str) -> bytes:
    return ET.tostring(_record_element(None, item, row), encoding="utf-8", xml_declaration=True)


def to_csv(rows: list[dict]) -> bytes:
    output = BytesIO()
    pd.DataFrame(rows).to_csv(output, index=False, encoding="utf-8-sig")
    return output.getvalue()


def render_export(
    records: list[Any],
    representation: Representation,
    *,
    root: str = "accounts",
    item: str = "account",
) -> Response:
    rows = [r.to_dict() for r in records]
    if representation is Representation.csv:
        timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
        return Response(
            content=to_csv(rows),
            media_type="text/csv",
            headers={"Content-Disposition": f"attachment; filename={root}_{timestamp}.csv"},
        )
    return Response(content=to_xml(rows, root, item), media_type="application/xml")


def render_record_export(record: Any, representation: Representation, *, item: str = "account") -> Response:
    row = record.to_dict()
    if representation is Representation.csv:
        return Response(content=to_csv([row]), media_type="text/csv")
    return Response(content=record_to_xml(row, item), media_type="application/xml")
