from pathlib import Path

import cli
from services.stock_data_client import ProgressState, SubmitResult


def test_cli_saves_and_reports_path(monkeypatch, tmp_path, capsys):
    captured = {}

    def fake_submit(self, symbols_text, start_date, end_date, interval="1d"):
        captured["args"] = (self.base_url, self.output_dir, symbols_text, start_date, end_date, interval)
        self.on_progress(ProgressState(current=1, total=1, error=None))
        return SubmitResult(ok=True, path=tmp_path / "stock_historical_data.csv")

    monkeypatch.setattr(cli.StockDataClient, "submit", fake_submit)

    code = cli.main(
        ["aapl,msft", "--start", "2023-01-01", "--end", "2023-01-05", "--interval", "1mo",
         "--url", "http://api", "--output-dir", str(tmp_path)]
    )

    assert code == 0
    assert captured["args"] == ("http://api", Path(tmp_path), "aapl,msft", "2023-01-01", "2023-01-05", "1mo")
    out = capsys.readouterr().out
    assert "Processing 1 of 1 symbols (100%)" in out
    assert "stock_historical_data.csv" in out


def test_cli_returns_error_code(monkeypatch, capsys):
    monkeypatch.setattr(
        cli.StockDataClient,
        "submit",
        lambda self, *args, **kwargs: SubmitResult(ok=False, error="No valid data retrieved for any symbols"),
    )

    code = cli.main(["BAD", "--start", "2023-01-01", "--end", "2023-01-05"])

    assert code == 1
    assert "No valid data retrieved for any symbols" in capsys.readouterr().err
