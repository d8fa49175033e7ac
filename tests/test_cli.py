from typer.testing import CliRunner

from matchedcover.cli import app

runner = CliRunner()


def test_carriers_lists_eligible_carriers():
    result = runner.invoke(app, ["carriers", "--state", "tx", "--product", "home"])

    assert result.exit_code == 0
    assert "State Farm" in result.output
    assert "GEICO" not in result.output


def test_carriers_with_no_match():
    result = runner.invoke(app, ["carriers", "--state", "AK"])

    assert result.exit_code == 0
    assert "No carriers" in result.output


def test_estimate_prints_annual_premium():
    result = runner.invoke(
        app,
        ["estimate", "--carrier", "geico", "--dob", "1996-05-01", "--vehicle-year", "2021", "--as-of", "2026-01-15"],
    )

    assert result.exit_code == 0
    assert "$680" in result.output
    assert "$61" in result.output


def test_estimate_unknown_carrier_fails():
    result = runner.invoke(app, ["estimate", "--carrier", "acme", "--dob", "1990-01-01"])

    assert result.exit_code == 1


def test_quote_rejects_invalid_request_file(tmp_path):
    request_file = tmp_path / "request.json"
    request_file.write_text('{"customerId": "c1"}', encoding="utf-8")

    result = runner.invoke(app, ["quote", str(request_file)])

    assert result.exit_code == 1
