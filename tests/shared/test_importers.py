from __future__ import annotations

import io
import json
from pathlib import Path

import pytest

from recon_cli.shared.exceptions import ImportDataError
from recon_cli.shared.importers import default_source_name, load_records


def test_load_json_array(tmp_path: Path) -> None:
    path = tmp_path / "contacts.json"
    path.write_text(json.dumps([{"name": "Acme", "email": "a@acme.com"}]), encoding="utf-8")
    assert load_records(path) == [{"name": "Acme", "email": "a@acme.com"}]


def test_load_json_records_envelope(tmp_path: Path) -> None:
    path = tmp_path / "contacts.json"
    path.write_text(json.dumps({"records": [{"name": "Acme"}, {"name": "Beta"}]}), encoding="utf-8")
    assert [record["name"] for record in load_records(path)] == ["Acme", "Beta"]


def test_load_json_lines_skips_blank_lines(tmp_path: Path) -> None:
    path = tmp_path / "events.jsonl"
    path.write_text('{"id": 1}\n\n{"id": 2}\n', encoding="utf-8")
    assert load_records(path) == [{"id": 1}, {"id": 2}]


def test_load_csv_maps_empty_cells_to_none(tmp_path: Path) -> None:
    path = tmp_path / "contacts.csv"
    path.write_text("name,email\nAcme,\n", encoding="utf-8")
    assert load_records(path) == [{"name": "Acme", "email": None}]


def test_load_from_stdin_sniffs_format() -> None:
    stdin = io.StringIO('[{"name": "Acme"}]')
    assert load_records("-", stdin=stdin) == [{"name": "Acme"}]
    assert load_records("-", stdin=io.StringIO("name\nAcme\n")) == [{"name": "Acme"}]


def test_non_object_records_rejected(tmp_path: Path) -> None:
    path = tmp_path / "values.json"
    path.write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(ImportDataError, match="expected an object"):
        load_records(path)


def test_empty_batch_rejected(tmp_path: Path) -> None:
    path = tmp_path / "empty.json"
    path.write_text("[]", encoding="utf-8")
    with pytest.raises(ImportDataError, match="no records"):
        load_records(path)


def test_unsupported_suffix_and_missing_file(tmp_path: Path) -> None:
    path = tmp_path / "data.xlsx"
    path.write_text("", encoding="utf-8")
    with pytest.raises(ImportDataError, match="Unsupported"):
        load_records(path)
    with pytest.raises(ImportDataError, match="not found"):
        load_records(tmp_path / "absent.csv")


def test_default_source_name() -> None:
    assert default_source_name("/data/customer_list.csv") == "customer_list"
    assert default_source_name("-") == "stdin"
