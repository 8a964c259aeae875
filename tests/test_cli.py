"""Tests for the command-line entry point."""

import json
import shutil
from pathlib import Path

import pytest

from main import collect_inputs, main, resolve_output_path, run_extraction, source_name
from invoice_extraction.utils.exceptions import (
    EvaluationError,
    InputFileNotFoundError,
    UnsupportedFileTypeError,
)


@pytest.fixture
def dump_dir(tmp_path, sample_dump):
    directory = tmp_path / "dumps"
    directory.mkdir()
    shutil.copy(sample_dump, directory / "b_invoice.png.txt")
    shutil.copy(sample_dump, directory / "a_invoice.pdf.txt")
    (directory / "notes.md").write_text("ignored", encoding="utf-8")
    return directory


class TestHelpers:
    def test_source_name(self):
        assert source_name(Path("ocr/invoice_001.pdf.txt")) == "invoice_001.pdf"
        assert source_name(Path("scan.TXT")) == "scan"

    def test_collect_inputs_from_directory(self, dump_dir):
        assert [p.name for p in collect_inputs(str(dump_dir))] == [
            "a_invoice.pdf.txt", "b_invoice.png.txt"
        ]

    def test_collect_inputs_errors(self, tmp_path):
        with pytest.raises(InputFileNotFoundError):
            collect_inputs(str(tmp_path / "missing"))

        scan = tmp_path / "scan.pdf"
        scan.write_bytes(b"%PDF")
        with pytest.raises(UnsupportedFileTypeError):
            collect_inputs(str(scan))

    def test_output_directory(self, tmp_path):
        assert resolve_output_path(str(tmp_path / "results")) == (
            tmp_path / "results" / "extraction_results.json"
        )
        assert (tmp_path / "results").is_dir()


class TestRunExtraction:
    def test_directory_run(self, dump_dir, tmp_path, fixed_clock):
        output = tmp_path / "out.json"
        results = run_extraction(str(dump_dir), str(output), clock=fixed_clock)

        assert [r.metadata.source for r in results] == ["pdf_import", "image_import"]
        with open(output, encoding="utf-8") as f:
            written = json.load(f)
        assert len(written) == 2
        assert written[0]["basic_info"]["invoice_number"] == "INV-2024-0015"
        assert written[0]["metadata"]["file_name"] == "a_invoice.pdf"

    def test_evaluate_requires_ground_truth(self, sample_dump):
        with pytest.raises(EvaluationError):
            run_extraction(str(sample_dump), evaluate=True)


class TestMain:
    def test_single_file(self, sample_dump, tmp_path):
        output = tmp_path / "results.json"
        assert main(["--input", str(sample_dump), "--output", str(output), "--quiet"]) == 0
        with open(output, encoding="utf-8") as f:
            assert json.load(f)[0]["amount_info"]["total_amount"] == 132000

    def test_with_evaluation(self, sample_dump, fixtures_dir, tmp_path, capsys):
        settings = tmp_path / "settings.yaml"
        settings.write_text(
            f"paths:\n  output_dir: {tmp_path / 'outputs'}\n", encoding="utf-8"
        )
        exit_code = main([
            "--input", str(sample_dump),
            "--output", str(tmp_path / "results.json"),
            "--config", str(settings),
            "--evaluate",
            "--ground-truth", str(fixtures_dir / "golden.json"),
            "--quiet",
        ])

        assert exit_code == 0
        assert "EXTRACTION EVALUATION REPORT" in capsys.readouterr().out
        assert len(list((tmp_path / "outputs" / "reports").glob("evaluation_*.txt"))) == 1

    def test_unsupported_input(self, tmp_path, capsys):
        scan = tmp_path / "scan.pdf"
        scan.write_bytes(b"%PDF")
        assert main(["--input", str(scan), "--quiet"]) == 1
        assert "Unsupported file type" in capsys.readouterr().err

    def test_missing_input(self, tmp_path):
        assert main(["--input", str(tmp_path / "missing.txt"), "--quiet"]) == 1

    def test_empty_directory(self, tmp_path):
        empty = tmp_path / "empty"
        empty.mkdir()
        assert main(["--input", str(empty), "--output", str(tmp_path / "out.json"), "--quiet"]) == 1
