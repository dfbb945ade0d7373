import json
from datetime import datetime, timedelta, timezone
from unittest.mock import Mock, patch

from click.testing import CliRunner

from reflights.cli import cli


def policy_down():
    return Mock(status_code=503, text="Service Unavailable")


def departure_in(hours):
    return (datetime.now(timezone.utc) + timedelta(hours=hours)).isoformat()


@patch("requests.get")
def test_calculate_with_static_fallback(mock_get):
    mock_get.return_value = policy_down()

    result = CliRunner().invoke(
        cli,
        [
            "calculate",
            "--airline", "SkyLink Airways",
            "--price", "1.0",
            "--departure", departure_in(10.5),
            "--request",
        ],
    )

    assert result.exit_code == 0, result.output
    assert "75% refund available" in result.output
    assert "0.7125 AVAX" in result.output
    payload = json.loads(result.output[result.output.index("{"):])
    assert payload["ticketId"] == "TKT-CLI"
    assert payload["policy"]["percentage"] == 75


@patch("requests.get")
def test_calculate_from_ticket_file(mock_get, tmp_path):
    mock_get.return_value = policy_down()
    ticket_file = tmp_path / "ticket.json"
    ticket_file.write_text(
        json.dumps(
            {
                "id": "TKT-009",
                "flightNumber": "CF 77",
                "airline": "ChainFly",
                "departureTime": departure_in(100),
                "price": 2.0,
                "class": "First",
            }
        )
    )

    result = CliRunner().invoke(cli, ["calculate", "--ticket-file", str(ticket_file)])

    assert result.exit_code == 0, result.output
    assert "100% refund available" in result.output
    assert "1.9000 AVAX" in result.output


@patch("requests.get")
def test_calculate_unknown_airline(mock_get):
    mock_get.return_value = policy_down()

    result = CliRunner().invoke(
        cli,
        ["calculate", "--airline", "Ghost Air", "--price", "1", "--departure", departure_in(5), "--request"],
    )

    assert result.exit_code == 1
    assert "Airline policy not found" in result.output
    assert "not eligible" in result.output


def test_calculate_requires_ticket_details():
    result = CliRunner().invoke(cli, ["calculate", "--airline", "ChainFly"])
    assert result.exit_code == 2


@patch("requests.get")
def test_policy_command_prints_rules(mock_get):
    mock_get.return_value = policy_down()

    result = CliRunner().invoke(cli, ["policy", "AeroChain"])

    assert result.exit_code == 0, result.output
    assert "AeroChain refund policy (static)" in result.output
    assert "72+ hours before departure: 95% (Near full refund)" in result.output


@patch("requests.get")
def test_refunds_command(mock_get):
    resp = Mock(status_code=200)
    resp.json.return_value = [
        {
            "id": "REF-001",
            "status": "approved",
            "airline": "AeroChain",
            "flightNumber": "AC 9012",
            "refundAmount": 0.95,
            "refundPercentage": 85,
            "requestDate": "2024-11-20",
            "reason": "Flight cancelled by airline",
        }
    ]
    mock_get.return_value = resp

    result = CliRunner().invoke(cli, ["refunds"])

    assert result.exit_code == 0, result.output
    assert "REF-001" in result.output
    assert "0.9500 AVAX" in result.output


@patch("requests.post")
def test_claim_command_error(mock_post):
    mock_post.return_value = Mock(status_code=409, text="already claimed")

    result = CliRunner().invoke(cli, ["claim", "REF-001"])

    assert result.exit_code == 1
    assert "HTTP 409" in result.output


@patch("reflights.cli.BlockingScheduler")
@patch("requests.get")
def test_watch_removes_countdown_job_on_interrupt(mock_get, mock_sched_cls):
    mock_get.return_value = policy_down()
    sched = Mock(running=False)
    sched.start.side_effect = KeyboardInterrupt
    mock_sched_cls.return_value = sched

    result = CliRunner().invoke(
        cli,
        ["watch", "--airline", "ChainFly", "--price", "1.0", "--departure", departure_in(10)],
    )

    assert result.exit_code == 0, result.output
    assert "80% refund available" in result.output
    args, kwargs = sched.add_job.call_args
    assert args[1] == "interval"
    assert kwargs["seconds"] == 60
    sched.start.assert_called_once()
    sched.add_job.return_value.remove.assert_called_once()
