# FILE: rxprint/api/routes_layouts.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Query

from rxprint.services.layout import available_templates, get_template
from rxprint.utils.resp import ok

router = APIRouter()


@router.get("")
def api_list_layouts():
    return ok([{
        "name": t.name,
        "version": t.version,
        "label": t.label,
        "fields": t.keys,
    } for t in available_templates()])


@router.get("/{name}")
def api_get_layout(name: str, version: Optional[int] = Query(None, ge=1)):
    return ok(get_template(name, version).as_dict())
