from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from tradeledger import cli
from tradeledger.analytics.report import compute_pnl_report
from tradeledger.contracts.report import decode_report
from tradeledger.ledger.sample_dataset import EXPECTED_TOTALS, OWNER_ID, SAMPLE_POLLDATA, SAMPLE_PRICELIST


@pytest.fixture()
def bot_files(tmp_path: Path, monkeypatch) -> dict[str, Path]:
    # Leave the root logger to pytest.
    monkeypatch.setattr(cli, "init_structured_logging", lambda **_: None)
    for name in ("PNL_EXCLUDED_COUNTERPARTIES", "PNL_CURRENCY_SKUS", "PNL_KEY_SKU", "PNL_KEY_PRICE_FALLBACK", "PNL_KEY_PRICE_MAX"):
        monkeypatch.delenv(name, raising=False)

    files = {
        "polldata": tmp_path / "polldata.json",
        "pricelist": tmp_path / "pricelist.json",
        "config": tmp_path / "config.json",
    }
    files["polldata"].write_text(json.dumps(SAMPLE_POLLDATA), encoding="utf-8")
    files["pricelist"].write_text(json.dumps(SAMPLE_PRICELIST), encoding="utf-8")
    files["config"].write_text(json.dumps({"botOwnerSteamIDs": [OWNER_ID]}), encoding="utf-8")
    return files


def test_cli_json_report(bot_files, capsys) -> None:
    rc = cli.main(
        [
            "--polldata", str(bot_files["polldata"]),
            "--pricelist", str(bot_files["pricelist"]),
            "--config", str(bot_files["config"]),
        ]
    )
    assert rc == 0
    msg = decode_report(capsys.readouterr().out)
    assert round(msg.cumulative_profit, 10) == EXPECTED_TOTALS["cumulative_profit"]
    assert msg.excluded_trades == 1


def test_cli_table_report(bot_files, capsys) -> None:
    rc = cli.main(
        [
            "--polldata", str(bot_files["polldata"]),
            "--pricelist", str(bot_files["pricelist"]),
            "--config", str(bot_files["config"]),
            "--format", "table",
            "--top", "1",
        ]
    )
    assert rc == 0
    out = capsys.readouterr().out
    assert "Total net profit:     +5.50 ref" in out
    assert "The Team Captain" in out
    assert "Unusual Test Hat" not in out
    assert "warning: dropped 1 malformed record(s)" in out


def test_cli_missing_polldata_exits_2(bot_files, capsys, tmp_path: Path) -> None:
    rc = cli.main(["--polldata", str(tmp_path / "nope.json"), "--pricelist", str(bot_files["pricelist"])])
    assert rc == 2
    assert "polldata not found" in capsys.readouterr().err


def test_cli_missing_pricelist_uses_fallback_key_price(bot_files, capsys, tmp_path: Path) -> None:
    rc = cli.main(["--polldata", str(bot_files["polldata"]), "--pricelist", str(tmp_path / "nope.json")])
    assert rc == 0
    msg = decode_report(capsys.readouterr().out)
    assert msg.degraded_pricing is True
    assert msg.exchange_rate == 52.22


def test_render_table_marks_fallback_price() -> None:
    report = compute_pnl_report([], exchange_rate=None)
    text = cli.render_table(report, names={}, now_ms=0)
    assert "52.22 ref (fallback)" in text


def test_cli_settings_warnings_are_json_lines_on_stderr(tmp_path: Path, monkeypatch, capsys) -> None:
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    root = logging.getLogger()
    saved_handlers = root.handlers[:]
    try:
        rc = cli.main(
            [
                "--polldata", str(tmp_path / "nope.json"),
                "--pricelist", str(tmp_path / "nope.json"),
                "--config", str(tmp_path / "missing-config.json"),
            ]
        )
    finally:
        root.handlers = saved_handlers
        logging.captureWarnings(False)

    assert rc == 2
    events = [json.loads(line) for line in capsys.readouterr().err.splitlines() if line.startswith("{")]
    assert any(e["event_type"] == "config.unreadable" for e in events)
