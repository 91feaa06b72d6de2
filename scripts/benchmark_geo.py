#!/usr/bin/env python3
"""Compare PostGIS and scan proximity search from the command line.

  python scripts/benchmark_geo.py --diagnostics
  python scripts/benchmark_geo.py --target resources --lat 40.7128 --lng -74.006 --radius 50000
  python scripts/benchmark_geo.py --batch --radius 50000 --api-url http://localhost:8000/api/v1
"""

import argparse
import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from relief_api import config
from relief_api.database import SessionLocal
from relief_api.services.benchmark import BenchmarkHarness
from relief_api.services.capability import CapabilityProbe
from relief_api.services.errors import SearchError
from relief_api.services.proximity import build_query, parse_tags
from relief_api.services.query import TARGETS
from relief_api.services.storage import SpatialStore


def _print_report(report: dict) -> None:
    print(f"\n📊 {report['target']} @ ({report['center']['latitude']}, {report['center']['longitude']}) "
          f"within {report['radius_meters']:,.0f}m")
    print("---------------------------------------")
    for name in ("indexed", "scan", "http"):
        timing = report[name]
        if timing.get("skipped"):
            print(f"{name:<8} N/A ({timing['reason']})")
        elif timing.get("error"):
            print(f"{name:<8} ❌ {timing['error']}")
        else:
            print(f"{name:<8} {timing['time_ms']}ms ({timing['count']} results)")
    print("---------------------------------------")
    print(f"Fastest: {report['fastest'] or 'None'}")
    if report["consistent"] is not None:
        print("Backends agree" if report["consistent"] else "⚠️  Backends disagree")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("--diagnostics", action="store_true", help="only print the PostGIS probe result")
    parser.add_argument("--batch", action="store_true", help="run every test location")
    parser.add_argument("--target", choices=sorted(TARGETS), default="resources")
    parser.add_argument("--lat", type=float, default=40.7128)
    parser.add_argument("--lng", type=float, default=-74.006)
    parser.add_argument("--radius", type=float, default=50000)
    parser.add_argument("--tags", default=None, help="comma separated (disasters)")
    parser.add_argument("--type", default=None, help="resource type (resources)")
    parser.add_argument("--api-url", default=config.BENCHMARK_API_URL)
    parser.add_argument("--json", action="store_true", help="print raw JSON")
    args = parser.parse_args(argv)

    probe = CapabilityProbe(SessionLocal)
    probe.probe()
    diagnostics = probe.diagnostics()
    if args.diagnostics:
        print(json.dumps(diagnostics, indent=2))
        return 0 if diagnostics["available"] else 1

    print(f"🔍 PostGIS: {diagnostics['state']}" + (f" ({diagnostics['reason']})" if diagnostics["reason"] else ""))

    db = SessionLocal()
    try:
        harness = BenchmarkHarness(SpatialStore(db), probe, api_url=args.api_url,
                                   http_timeout=config.BENCHMARK_HTTP_TIMEOUT)
        if args.batch:
            result = harness.batch(args.radius)
            if args.json:
                print(json.dumps(result, indent=2))
            else:
                print("\n🌎 BATCH TEST SUMMARY")
                print("---------------------------------------")
                for row in result["locations"]:
                    counts = ", ".join(
                        f"{row[t]['scan_count']} {t}" for t in ("resources", "disasters") if t in row
                    )
                    print(f"{row['location']}: {counts}")
                print("---------------------------------------")
                print(f"Mismatches: {result['mismatches']}")
            return 1 if result["mismatches"] else 0

        target = TARGETS[args.target]
        query = build_query(target, args.lat, args.lng, args.radius,
                            tags=parse_tags(args.tags), type_filter=args.type)
        report = harness.compare(target, query).to_dict()
        if args.json:
            print(json.dumps(report, indent=2))
        else:
            _print_report(report)
        return 0
    except SearchError as e:
        print(f"❌ {e}", file=sys.stderr)
        return 2
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
