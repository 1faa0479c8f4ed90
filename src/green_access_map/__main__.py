import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from .config import LINK_ATTRIBUTE, get_config
from .export import write_fgb
from .geo import parse_bbox
from .loader import load_fgb
from .selection import route_endpoints


def _build_parser():
    parser = argparse.ArgumentParser(
        description="Green access map: FlatGeobuf parcels and walking routes",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (DEBUG, INFO, etc.)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    decode = sub.add_parser("decode", help="Decode an FGB source to GeoJSON")
    decode.add_argument("source", help="Path or URL of the .fgb source")
    decode.add_argument(
        "--bbox",
        default=None,
        help="Restrict to west,south,east,north",
    )
    decode.add_argument(
        "--output",
        default=None,
        help="Write the FeatureCollection here instead of stdout",
    )
    decode.add_argument(
        "--log-json",
        action="store_true",
        help="Emit one JSON log line per decoded feature on stderr",
    )

    build = sub.add_parser("build", help="Build an FGB file from GeoJSON")
    build.add_argument("input", help="GeoJSON FeatureCollection file")
    build.add_argument("output", help="Destination .fgb path")
    build.add_argument("--name", default=None, help="Layer name (defaults to the file stem)")
    build.add_argument(
        "--no-index",
        action="store_true",
        help="Write without the packed R-tree",
    )

    routes = sub.add_parser("routes", help="Count the routes of one parcel")
    routes.add_argument("parcel_id", help="Value of the parcel_id attribute")
    routes.add_argument(
        "--routes",
        default=None,
        help="Routes .fgb path or URL (defaults to GAM_ROUTES_URL)",
    )
    return parser


def _decode(args):
    bbox = parse_bbox(args.bbox) if args.bbox else None
    timeout = get_config().http_timeout_s
    collection = asyncio.run(load_fgb(args.source, bbox, timeout=timeout))
    if args.log_json:
        for feature in collection:
            geometry = feature.geometry or {}
            print(
                json.dumps(
                    {
                        "id": feature.id,
                        "geometry_type": geometry.get("type"),
                        "properties": len(feature.properties),
                    }
                ),
                file=sys.stderr,
            )
    doc = collection.to_geojson()
    if args.output:
        Path(args.output).write_text(json.dumps(doc), encoding="utf-8")
    else:
        print(json.dumps(doc))
    summary = {
        "source": args.source,
        "bbox": list(bbox) if bbox else None,
        "features": len(collection),
        "output": args.output,
    }
    print(json.dumps(summary))


def _build(args):
    doc = json.loads(Path(args.input).read_text(encoding="utf-8"))
    features = doc.get("features") if isinstance(doc, dict) else None
    if not isinstance(features, list):
        raise ValueError(f"{args.input} is not a GeoJSON FeatureCollection")
    written = write_fgb(
        features, args.output, name=args.name, spatial_index=not args.no_index
    )
    summary = {
        "input": args.input,
        "output": args.output,
        "features": written,
        "skipped": len(features) - written,
        "bytes": Path(args.output).stat().st_size,
    }
    print(json.dumps(summary))


def _routes(args):
    config = get_config()
    url = args.routes or config.routes_url
    collection = asyncio.run(load_fgb(url, None, timeout=config.http_timeout_s))
    routes = collection.filter(
        lambda f: f.get(LINK_ATTRIBUTE) is not None
        and str(f.get(LINK_ATTRIBUTE)) == args.parcel_id
    )
    summary = {
        "parcel_id": args.parcel_id,
        "routes": len(routes),
        "endpoints": len(route_endpoints(routes)),
    }
    print(json.dumps(summary))


def main(argv=None):
    args = _build_parser().parse_args(argv)
    if args.log_level:
        logging.basicConfig(level=args.log_level.upper())
    if args.command == "decode":
        _decode(args)
    elif args.command == "build":
        _build(args)
    else:
        _routes(args)


def _safe_main(argv=None):
    try:
        main(argv)
    except SystemExit:
        raise
    except Exception as exc:
        print(json.dumps({"error": str(exc)}))
        raise SystemExit(1)


if __name__ == "__main__":
    _safe_main()
