"""Polygon readers for KML, GPX and GeoJSON, dispatched by file extension."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Iterable
import xml.etree.ElementTree as ET

from shapely.errors import GEOSException
from shapely.geometry import shape as shp_shape

from terrain_area.errors import ReaderError
from terrain_area.polygon import Polygon


def _local(tag: str) -> str:
    # "{http://www.opengis.net/kml/2.2}Polygon" -> "Polygon"
    return tag.rsplit("}", 1)[-1]


def _parse_xml(path: Path) -> ET.Element:
    try:
        return ET.parse(path).getroot()
    except ET.ParseError as e:
        raise ReaderError(f"Failed to parse XML: {path}: {e}") from e


def _kml_coordinates(text: str) -> list[tuple[float, float]]:
    out = []
    for token in text.split():
        parts = token.split(",")
        if len(parts) < 2:
            continue
        try:
            out.append((float(parts[0]), float(parts[1])))
        except ValueError as e:
            raise ReaderError(f"Bad KML coordinate {token!r}: {e}") from e
    return out


def read_kml(path: Path) -> list[Polygon]:
    """Outer boundary of the first Polygon anywhere in the document."""
    root = _parse_xml(path)
    for elem in root.iter():
        if _local(elem.tag) != "Polygon":
            continue
        for outer in elem.iter():
            if _local(outer.tag) != "outerBoundaryIs":
                continue
            for coords in outer.iter():
                if _local(coords.tag) == "coordinates" and coords.text:
                    try:
                        ring = _kml_coordinates(coords.text)
                    except ReaderError as e:
                        raise ReaderError(f"{path}: {e}") from e
                    return [Polygon.from_lonlat(ring, name=path.name)]
    raise ReaderError(f"No Polygon found in KML: {path}")


def read_gpx(path: Path) -> list[Polygon]:
    """One polygon per track segment."""
    root = _parse_xml(path)
    out: list[Polygon] = []
    for seg in root.iter():
        if _local(seg.tag) != "trkseg":
            continue
        try:
            coords = [
                (float(pt.attrib["lon"]), float(pt.attrib["lat"]))
                for pt in seg
                if _local(pt.tag) == "trkpt"
            ]
        except KeyError as e:
            raise ReaderError(f"GPX trkpt missing attribute {e}: {path}") from e
        except ValueError as e:
            raise ReaderError(f"Bad GPX trkpt coordinate: {path}: {e}") from e
        out.append(Polygon.from_lonlat(coords, name=path.name))
    if not out:
        raise ReaderError(f"No track segment found in GPX: {path}")
    return out


def _iter_geojson_geometries(payload: dict[str, Any]) -> Iterable[dict[str, Any]]:
    t = payload.get("type")
    if t == "FeatureCollection":
        feats = payload.get("features")
        if not isinstance(feats, list):
            raise ReaderError("GeoJSON FeatureCollection missing 'features' list")
        for f in feats:
            if isinstance(f, dict) and isinstance(f.get("geometry"), dict):
                yield f["geometry"]
        return
    if t == "Feature":
        if isinstance(payload.get("geometry"), dict):
            yield payload["geometry"]
        return
    if isinstance(t, str):
        yield payload
        return
    raise ReaderError(f"Unsupported GeoJSON type: {t!r}")


def read_geojson(path: Path) -> list[Polygon]:
    """Exterior ring of every Polygon, or of the first part of every MultiPolygon."""
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise ReaderError(f"Failed to read GeoJSON: {path}: {e}") from e
    if not isinstance(payload, dict):
        raise ReaderError(f"GeoJSON root must be an object: {path}")

    out: list[Polygon] = []
    for geom_mapping in _iter_geojson_geometries(payload):
        if geom_mapping.get("type") not in {"Polygon", "MultiPolygon"}:
            continue
        try:
            g = shp_shape(geom_mapping)
        except (ValueError, TypeError, KeyError, IndexError, GEOSException) as e:
            raise ReaderError(f"Invalid GeoJSON geometry: {path}: {e}") from e
        if g.is_empty:
            continue
        if g.geom_type == "MultiPolygon":
            g = g.geoms[0]
        out.append(Polygon.from_lonlat(g.exterior.coords, name=path.name))
    if not out:
        raise ReaderError(f"No polygon geometries found in GeoJSON: {path}")
    return out


READERS = {
    ".kml": read_kml,
    ".gpx": read_gpx,
    ".geojson": read_geojson,
    ".json": read_geojson,
}


def read_polygons(path: str | Path) -> list[Polygon]:
    p = Path(path)
    reader = READERS.get(p.suffix.lower())
    if reader is None:
        raise ReaderError(f"Unsupported polygon file: {p} (use {', '.join(sorted(READERS))})")
    if not p.exists():
        raise ReaderError(f"Polygon file not found: {p}")
    polygons = reader(p)
    if len(polygons) > 1:
        for i, poly in enumerate(polygons, start=1):
            poly.name = f"{p.name}#{i}"
    return polygons
