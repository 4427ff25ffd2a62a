"""
Flow Inspection Runner
Runs a saved inspection flow against an image file or a folder of images.

Usage:
    python main.py FLOW.json IMAGE [--product PRODUCT.json] [--json]
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from visionflow.flow import FlowEngine, load_product_file
from visionflow.models import InspectionStatus
from visionflow.utils import setup_logging
from visionflow.vision import ImageSourceFactory

logger = logging.getLogger(__name__)


def run_inspection(engine: FlowEngine, image_path: Path, product_config, as_json: bool) -> list:
    """Run the loaded flow on every frame of an image file or folder."""
    results = []
    with ImageSourceFactory.create_source_from_path(image_path) as source:
        if not source.is_available():
            print(f"Error: no images available at {image_path}")
            return results

        while source.is_available():
            result = engine.execute_source(source, product_config)
            results.append(result)

            if as_json:
                print(json.dumps(result.to_dict(), indent=2))
            else:
                print(f"\n{result.metadata.get('source', image_path)}")
                print(result.get_summary())

            if not image_path.is_dir():
                break
    return results


def print_batch_summary(results: list):
    ok_count = sum(1 for r in results if r.status == InspectionStatus.OK)
    ng_count = sum(1 for r in results if r.status == InspectionStatus.NG)
    other_count = len(results) - ok_count - ng_count
    avg_time = sum(r.duration_ms for r in results) / len(results)

    print(f"\n{'=' * 50}")
    print("Batch Inspection Summary:")
    print(f"Total: {len(results)} | OK: {ok_count} | NG: {ng_count} | Other: {other_count}")
    print(f"Average processing time: {avg_time:.2f} ms")
    print(f"{'=' * 50}")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description='Run a vision inspection flow')
    parser.add_argument('flow', type=str, help='Flow definition JSON file')
    parser.add_argument('image', type=str, help='Image file or folder of images')
    parser.add_argument('--product', type=str, help='Product configuration JSON file')
    parser.add_argument('--json', action='store_true', help='Print result documents as JSON')
    parser.add_argument('--verbose', action='store_true', help='Enable debug logging')
    parser.add_argument('--no-log-file', action='store_true', help='Log to stdout only')
    args = parser.parse_args(argv)

    setup_logging(level=logging.DEBUG if args.verbose else logging.INFO,
                  log_to_file=not args.no_log_file)

    product_config = None
    if args.product:
        product_config = load_product_file(args.product)
        if product_config is None:
            print(f"Error: could not load product configuration {args.product}")
            return 2

    with FlowEngine() as engine:
        load_report = engine.load_file(args.flow)
        for warning in load_report.warnings:
            print(f"Warning: {warning}")
        if not load_report.is_valid:
            for error in load_report.errors:
                print(f"Error: {error}")
            return 2

        validation = engine.validate()
        for warning in validation.warnings:
            print(f"Warning: {warning}")
        if not validation.is_valid:
            for error in validation.errors:
                print(f"Error: {error}")
            return 2

        results = run_inspection(engine, Path(args.image), product_config, args.json)

    if not results:
        return 1
    if len(results) > 1 and not args.json:
        print_batch_summary(results)
    return 0 if all(r.status == InspectionStatus.OK for r in results) else 1


if __name__ == "__main__":
    sys.exit(main())
