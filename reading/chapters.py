# reading/chapters.py
"""
Chapter documents embedded in a Subject's ``chapters`` list.

A chapter is stored as a plain dict::

    {"id": "...", "name": "Algebra", "total": 100, "read": 40.0, "is_completed": False}

``total`` is the target in minutes (0 = unset) and ``read`` the accumulated
minutes. Completion follows ``read >= total`` only while a target is set.
"""
from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from .models import new_document_id


def normalize_chapter(raw: Dict) -> Dict:
    """Fill in missing keys; a chapter without an id gets one here."""
    chapter = dict(raw)
    chapter["id"] = chapter.get("id") or new_document_id()
    chapter["name"] = str(chapter.get("name", "")).strip()
    chapter["total"] = chapter.get("total") or 0
    chapter["read"] = chapter.get("read") or 0
    chapter["is_completed"] = bool(chapter.get("is_completed", False))
    return chapter


def new_chapters(specs: Iterable[Dict]) -> List[Dict]:
    """
    Build the initial chapter list for a new subject.
    Blank names are dropped; duplicate names raise ValueError.
    """
    out: List[Dict] = []
    seen = set()
    for spec in specs:
        name = str(spec.get("name", "")).strip()
        if not name:
            continue
        if name in seen:
            raise ValueError(f"duplicate chapter name: {name}")
        seen.add(name)
        out.append({
            "id": new_document_id(),
            "name": name,
            "total": spec.get("total") or 0,
            "read": 0,
            "is_completed": False,
        })
    return out


def parse_chapter_names(text: str) -> List[Dict]:
    """Split a comma separated list of chapter names into chapter specs."""
    return [{"name": part.strip()} for part in (text or "").split(",") if part.strip()]


def find_chapter(chapters: Iterable[Dict], *, name: str = "", chapter_id: Optional[str] = None) -> Optional[Dict]:
    """Locate a chapter by stable id when given, otherwise by name."""
    for chapter in chapters:
        if chapter_id:
            if chapter.get("id") == chapter_id:
                return chapter
        elif chapter.get("name") == name:
            return chapter
    return None


def apply_reading(chapter: Dict, minutes: float) -> Dict:
    """Return a copy of ``chapter`` with ``minutes`` added to its read time."""
    updated = normalize_chapter(chapter)
    updated["read"] = round(float(updated["read"]) + minutes, 2)
    if updated["total"] > 0:
        updated["is_completed"] = updated["read"] >= updated["total"]
    return updated


def with_reading(chapters: Iterable[Dict], minutes: float, *, name: str = "", chapter_id: Optional[str] = None) -> List[Dict]:
    """
    Return the full chapter list with the matching chapter advanced.
    Non-matching chapters pass through unchanged apart from id backfill.
    """
    target = find_chapter(chapters, name=name, chapter_id=chapter_id)
    out = []
    for chapter in chapters:
        if chapter is target:
            out.append(apply_reading(chapter, minutes))
        else:
            out.append(normalize_chapter(chapter))
    return out
