"""Run summary and published README generation."""

from __future__ import annotations

from pathlib import Path

from nsw_sales.common.constants import README_ARTIFACT
from nsw_sales.common.fs import write_json, write_text


def render_readme(*, generated: str, total_records: int, years: list[int]) -> str:
    year_list = ", ".join(str(year) for year in sorted(years)) or "none"
    return (
        "# NSW Property Sales Data\n"
        "\n"
        "Property sales data for NSW, partitioned into static JSON artifacts.\n"
        "\n"
        "## Structure\n"
        "\n"
        "- `master-address-index.json` - lowercased address -> year -> sale count\n"
        "- `YYYY/` - data by year\n"
        "  - `manifest.json` - year metadata and chunk list\n"
        "  - `properties-YYYY-NNN.json` - record chunks (compact field aliases)\n"
        "  - `addresses/` - records of addresses sold more than once that year\n"
        "\n"
        "Compact aliases: `a` address, `s` suburb, `p` postcode, `t` propertyType,\n"
        "`$` salePrice, `d` saleDate, `l` districtCode, `m` area, `y` year,\n"
        "`z` zoning, `n` natureOfProperty.\n"
        "\n"
        f"Generated: {generated}\n"
        f"Properties: {total_records:,}\n"
        f"Years: {year_list}\n"
    )


def write_readme(output_dir: Path, *, generated: str, total_records: int, years: list[int]) -> Path:
    path = output_dir / README_ARTIFACT
    write_text(path, render_readme(generated=generated, total_records=total_records, years=years))
    return path


def write_run_summary(run_meta_dir: Path, run_id: str, payload: dict) -> Path:
    path = run_meta_dir / f"{run_id}.summary.json"
    write_json(path, {"run_id": run_id, **payload})
    return path
