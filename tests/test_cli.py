"""
Tests for the Typer command line interface.
"""

import json

from typer.testing import CliRunner

from slotengine import __version__
from slotengine.cli.app import app

runner = CliRunner()

NOW_ARG = "2025-03-09T12:00:00-03:00"


def test_slots_available_view(config_file):
    result = runner.invoke(
        app,
        [
            "slots", "salao", "corte", "2025-03-10",
            "--staff", "bruno", "--view", "available",
            "--now", NOW_ARG, "--config", str(config_file),
        ],
    )

    assert result.exit_code == 0, result.output
    assert "10:00" in result.output
    assert "10:30" in result.output
    assert "Bruno" in result.output
    assert "3 de 3" in result.output


def test_slots_all_view_shows_occupied(config_file):
    result = runner.invoke(
        app,
        [
            "slots", "salao", "corte", "2025-03-10",
            "--staff", "bruno", "--now", NOW_ARG, "--config", str(config_file),
        ],
    )

    assert result.exit_code == 0, result.output
    assert "agendado" in result.output
    assert "bloqueado" in result.output
    assert "3 de 10" in result.output


def test_slots_closed_day(config_file):
    result = runner.invoke(
        app,
        ["slots", "salao", "corte", "2025-03-11", "--now", NOW_ARG, "--config", str(config_file)],
    )

    assert result.exit_code == 0
    assert "Nenhum horário" in result.output


def test_slots_unknown_service(config_file):
    result = runner.invoke(
        app,
        ["slots", "salao", "nope", "2025-03-10", "--config", str(config_file)],
    )

    assert result.exit_code == 1
    assert "Service not found" in result.output


def test_slots_malformed_date(config_file):
    result = runner.invoke(
        app,
        ["slots", "salao", "corte", "10/03/2025", "--config", str(config_file)],
    )

    assert result.exit_code == 1
    assert "Invalid date" in result.output


def test_book_writes_data_file(config_file, data_file):
    result = runner.invoke(
        app,
        [
            "book", "salao", "corte", "2025-03-10", "14:00",
            "--customer", "Maria", "--phone", "+5571988887777", "--staff", "ana",
            "--now", NOW_ARG, "--config", str(config_file),
        ],
    )

    assert result.exit_code == 0, result.output
    assert "Agendamento confirmado" in result.output

    data = json.loads(data_file.read_text(encoding="utf-8"))
    created = [b for b in data["bookings"] if b["customer_name"] == "Maria"]
    assert len(created) == 1
    assert created[0]["staff_id"] == "ana"
    assert created[0]["created_via"] == "cli"
    assert created[0]["customer_id"] == data["customers"][0]["id"]


def test_book_taken_slot(config_file):
    result = runner.invoke(
        app,
        [
            "book", "salao", "corte", "2025-03-10", "10:00",
            "--customer", "Maria", "--phone", "+5571988887777", "--staff", "ana",
            "--now", NOW_ARG, "--config", str(config_file),
        ],
    )

    assert result.exit_code == 1
    assert "no longer available" in result.output


def test_book_end_of_day_rejected(config_file):
    result = runner.invoke(
        app,
        [
            "book", "salao", "corte", "2025-03-10", "24:00",
            "--customer", "Maria", "--phone", "+5571988887777",
            "--now", NOW_ARG, "--config", str(config_file),
        ],
    )

    assert result.exit_code == 1
    assert "dados inválidos" in result.output


def test_list_staff(config_file):
    result = runner.invoke(app, ["list-staff", "salao", "--config", str(config_file)])

    assert result.exit_code == 0, result.output
    assert "Ana" in result.output
    assert "Bruno" in result.output
    assert "Seg" in result.output
    assert "Carlos" not in result.output


def test_missing_config(tmp_path):
    result = runner.invoke(
        app,
        ["slots", "salao", "corte", "2025-03-10", "--config", str(tmp_path / "none.yaml")],
    )

    assert result.exit_code == 1
    assert "Config file not found" in result.output


def test_version():
    result = runner.invoke(app, ["version"])

    assert result.exit_code == 0
    assert __version__ in result.output
