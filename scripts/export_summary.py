import argparse
import json
import sys
from pathlib import Path

repo_root = Path(__file__).resolve().parents[1]
if str(repo_root) not in sys.path:
    sys.path.insert(0, str(repo_root))

from coral.filters import year_array  # noqa: E402
from coral.loader import Dataset, DatasetLoadError, load_dataset  # noqa: E402
from coral.stats import (  # noqa: E402
    alive_sizes,
    live_count,
    population_by_year,
    size_histogram,
    size_summary,
    survival_by_genus,
)

OUTPUT_PATH = Path("data/summary_statistics.json")
BIN_COUNT = 20
METRIC = "geometric_mean_diam"


def _print_status(message: str) -> None:
    print(message, flush=True)


def build_summary(dataset: Dataset, metric: str = METRIC, bin_count: int = BIN_COUNT) -> dict:
    colonies = dataset.colonies
    years = year_array(*dataset.year_range)
    genera = list(dataset.genera)
    last_year = dataset.year_range[1]

    population = population_by_year(colonies, years, genera)
    size_frequency = {}
    for year in years:
        by_genus = {}
        for genus in genera:
            sizes = alive_sizes([c for c in colonies if c.genus == genus], year, metric)
            bins = size_histogram(sizes, bin_count)
            if bins:
                by_genus[genus] = [
                    {
                        "bin_min": b.x0,
                        "bin_max": b.x1,
                        "bin_mid": (b.x0 * b.x1) ** 0.5,
                        "count": b.count,
                    }
                    for b in bins
                ]
        size_frequency[str(year)] = by_genus

    survival = survival_by_genus(colonies, genera, end_year=last_year)
    return {
        "dataset": {
            "name": dataset.name,
            "years": list(dataset.year_range),
            "n_colonies": len(colonies),
            "n_observations": sum(len(c.observations) for c in colonies),
            "transects": list(dataset.transects),
            "genera": genera,
            "size_metric": metric,
        },
        "population": [
            {"year": year, "live_colonies": live_count(colonies, year)} for year in years
        ],
        "population_by_genus": {
            genus: [
                {
                    "year": entry.year,
                    "count": entry.by_genus[genus].count,
                    "recruits": entry.by_genus[genus].recruits,
                    "deaths": entry.by_genus[genus].deaths,
                }
                for entry in population
            ]
            for genus in genera
        },
        "size_distribution": size_summary(colonies, last_year, metric, genera),
        "size_frequency": size_frequency,
        "survival": {
            genus: [{"time": p.time, "survival": p.survival} for p in curve]
            for genus, curve in survival.items()
        },
    }


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Export coral summary statistics to JSON.")
    parser.add_argument("--source", default=None, help="Path or URL of the webapp JSON")
    parser.add_argument("--output", default=str(OUTPUT_PATH))
    parser.add_argument("--metric", default=METRIC, choices=["geometric_mean_diam", "volume_proxy", "diam1"])
    parser.add_argument("--bins", type=int, default=BIN_COUNT)
    args = parser.parse_args(argv)

    try:
        dataset = load_dataset(args.source, metric=args.metric)
    except DatasetLoadError as exc:
        _print_status(f"Load failed: {exc}")
        return 1
    _print_status(
        f"Loaded {len(dataset.colonies)} colonies from {dataset.n_records} records "
        f"({len(dataset.skipped)} skipped)"
    )

    summary = build_summary(dataset, args.metric, args.bins)
    output = Path(args.output)
    output.parent.mkdir(parents=True, exist_ok=True)
    with output.open("w", encoding="utf-8") as handle:
        json.dump(summary, handle, indent=2)
    _print_status(f"Wrote summary for {len(summary['population'])} years to {output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
