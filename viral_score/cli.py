"""
Command-line interface for viral-score.

Examples:
    # Score one image
    viral-score analyze photo.jpg

    # Machine-readable output
    viral-score analyze photo.jpg --json

    # Inspect or drop the cached model artifact
    viral-score cache info
    viral-score cache clear
"""

import argparse
import asyncio
import json
import mimetypes
import sys
import yaml
from pathlib import Path
from typing import List, Optional

from tqdm import tqdm

from viral_score.config import get_global_config, setup_logging
from viral_score.exceptions import DecodeError, InferenceError, ModelLoadError, NotReady
from viral_score.image_processing.pixel_buffer import format_file_size
from viral_score.model_hub import AnalysisResult, DownloadProgress, PopularityPredictor
from viral_score.storage import ArtifactCache


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog='viral-score',
        description="Predict social media popularity of images and explain the score"
    )
    parser.add_argument(
        '--config',
        type=str,
        help='Extra YAML config merged over configs/global_config.yaml'
    )
    parser.add_argument(
        '--model-version',
        type=str,
        help='Override model.version (invalidates cached artifacts of other versions)'
    )
    subparsers = parser.add_subparsers(dest='command', required=True)

    analyze = subparsers.add_parser('analyze', help='Score one or more images')
    analyze.add_argument('images', nargs='+', help='Image files to analyze')
    analyze.add_argument('--json', action='store_true', help='Print results as JSON')

    cache = subparsers.add_parser('cache', help='Inspect or clear the model cache')
    cache.add_argument('action', choices=['info', 'clear'])

    return parser.parse_args(argv)


def _load_overrides(args: argparse.Namespace) -> None:
    config = get_global_config()
    if args.config:
        with open(args.config, 'r') as f:
            config.merge(yaml.safe_load(f) or {})
    if args.model_version:
        config.set('model.version', args.model_version)


class _DownloadBar:
    """tqdm progress bar fed by DownloadProgress callbacks."""

    def __init__(self):
        self.bar = None

    def __call__(self, progress: DownloadProgress) -> None:
        if self.bar is None:
            self.bar = tqdm(total=progress.total, unit="B", unit_scale=True, desc="Downloading model")
        self.bar.update(progress.loaded - self.bar.n)

    def close(self) -> None:
        if self.bar is not None:
            self.bar.close()


def _print_result(path: Path, result: AnalysisResult) -> None:
    insights = result.insights
    features = result.features

    print(f"\n{'='*60}")
    print(f"{path.name}")
    print(f"{'='*60}")
    print(f"Score:      {result.score:.2f}  ({insights.category})")
    print(f"            {insights.description}")
    print(f"Resolution: {features.dimensions.width} x {features.dimensions.height} "
          f"({features.dimensions.megapixels:.1f}MP)")
    print(f"Format:     {features.composition.format.value} - "
          f"{features.composition.resolution_tier.value} Quality")
    print(f"Lighting:   {features.lighting.lighting_type.value}")
    print(f"Sharpness:  {features.sharpness.tier.value}")

    for title, items in (
        ("What's working well", insights.positives),
        ("Key insights", insights.insights),
        ("Potential improvements", insights.improvements),
        ("Platform tips", insights.recommendations),
    ):
        if items:
            print(f"\n{title}:")
            for item in items:
                print(f"  - {item}")


async def run_analyze(args: argparse.Namespace) -> int:
    predictor = PopularityPredictor.from_global_config()
    try:
        download_bar = _DownloadBar()
        loaded = await predictor.start(on_progress=download_bar)
        download_bar.close()
        if not loaded:
            print(f"[ERROR] Failed to load the model: {predictor.loader.last_error}", file=sys.stderr)
            return 2

        exit_code = 0
        results = {}
        for image in args.images:
            path = Path(image)
            content_type = mimetypes.guess_type(path.name)[0]
            try:
                result = await predictor.analyze(path.read_bytes(), content_type)
            except (OSError, DecodeError) as e:
                print(f"[ERROR] {path}: {e}", file=sys.stderr)
                exit_code = 1
                continue
            except (NotReady, InferenceError, ModelLoadError) as e:
                print(f"[ERROR] {path}: analysis aborted: {e}", file=sys.stderr)
                return 2

            if args.json:
                results[str(path)] = result.to_dict()
            else:
                _print_result(path, result)

        if args.json:
            print(json.dumps(results, indent=2))
        return exit_code
    finally:
        predictor.close()


def run_cache(args: argparse.Namespace) -> int:
    config = get_global_config()
    cache = ArtifactCache(
        version=str(config.get('model.version', 'v1')),
        db_path=config.get_path('cache.db_path')
    )
    try:
        key = config.get('model.key', 'popularity-model')
        if args.action == 'clear':
            removed = cache.clear()
            print(f"[OK] Removed {removed} cached artifact(s)")
            return 0

        info = cache.info(key)
        stats = cache.get_stats()
        print(f"Database:  {stats['db_url']}")
        print(f"Entries:   {stats['count']} ({stats['size_mb']:.1f} MB)")
        if info is None:
            print(f"Model '{key}': not cached")
        else:
            current = 'current' if info.version == cache.version else f'stale, current is {cache.version}'
            print(f"Model '{key}': version {info.version} ({current}), {format_file_size(info.size)}")
        return 0
    finally:
        cache.close()


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    _load_overrides(args)
    setup_logging()

    if args.command == 'analyze':
        return asyncio.run(run_analyze(args))
    return run_cache(args)


if __name__ == '__main__':
    sys.exit(main())
