"""
Tests for the command line interface
"""

import json

import pytest

from pbscan import cli
from pbscan.exceptions import RecognitionFailure
from pbscan.models import Draw, NumberSet, ScanResult


class FakeGateway:
    def __init__(self, draw):
        self.draw = draw

    def get_latest_draw(self):
        return self.draw

    def quick_health_check_sources(self):
        return {'musl_api': False, 'ny_open_data': True}


class FakeRecognizer:
    def __init__(self):
        self.active = None
        self.shut_down = False

    def set_active_engine(self, name):
        self.active = name

    def shutdown(self):
        self.shut_down = True


class FakeScanner:
    def __init__(self, outcome):
        self.outcome = outcome
        self.recognizer = FakeRecognizer()
        self.images = []
        self.closed = False

    def close(self):
        self.closed = True
        self.recognizer.shutdown()

    async def scan(self, image_data):
        self.images.append(image_data)
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return self.outcome


@pytest.fixture
def use_draw(monkeypatch):
    def _use(draw):
        monkeypatch.setattr(cli, 'create_draw_gateway', lambda settings: FakeGateway(draw))
    return _use


@pytest.fixture
def use_scanner(monkeypatch):
    def _use(outcome):
        scanner = FakeScanner(outcome)
        monkeypatch.setattr(cli, 'create_ticket_scanner', lambda settings: scanner)
        return scanner
    return _use


@pytest.fixture
def ticket_file(tmp_path):
    path = tmp_path / 'ticket.png'
    path.write_bytes(b'image bytes')
    return str(path)


class TestCheck:
    """check subcommand"""

    def test_winning_play_with_power_play(self, use_draw, winning_draw, capsys):
        use_draw(winning_draw)

        code = cli.main(['check', '--white', '12', '23', '34', '45', '1', '--powerball', '7', '--power-play'])

        assert code == cli.EXIT_OK
        out = capsys.readouterr().out
        assert "WINNING TICKET!" in out
        assert "$150,000.00" in out

    def test_json_output(self, use_draw, winning_draw, capsys):
        use_draw(winning_draw)

        code = cli.main(['check', '--white', '1', '2', '3', '4', '5', '--powerball', '8', '--json'])

        assert code == cli.EXIT_OK
        payload = json.loads(capsys.readouterr().out)
        assert payload['is_winning_ticket'] is False
        assert payload['verification_results'][0]['line'] == 'A'

    def test_mock_draw_warning(self, use_draw, capsys):
        use_draw(Draw('2025-08-02', NumberSet((12, 23, 34, 45, 56), 7), 3, 50000000.0, 'mock'))

        cli.main(['check', '--white', '1', '2', '3', '4', '5', '--powerball', '8'])

        assert "mock draw data" in capsys.readouterr().out

    def test_power_play_is_kept_when_the_draw_has_no_multiplier(self, use_draw, capsys):
        use_draw(Draw('2025-08-02', NumberSet((12, 23, 34, 45, 56), 7), None, 0.0, 'ny_open_data'))

        cli.main(['check', '--white', '12', '23', '34', '45', '1', '--powerball', '7', '--power-play', '--json'])

        play = json.loads(capsys.readouterr().out)['verification_results'][0]
        assert play['power_play_selected'] is True
        assert play['prize_amount'] == 50000.0

    @pytest.mark.parametrize('argv', [
        ['--white', '12', '12', '34', '45', '56', '--powerball', '7'],
        ['--white', '12', '23', '34', '45', '70', '--powerball', '7'],
        ['--white', '12', '23', '34', '45', '56', '--powerball', '27'],
    ])
    def test_invalid_numbers(self, use_draw, winning_draw, argv):
        use_draw(winning_draw)
        assert cli.main(['check'] + argv) == cli.EXIT_ERROR


class TestScan:
    """scan subcommand"""

    def test_prints_plays(self, use_scanner, ticket_file, capsys):
        result = ScanResult(
            number_sets=(NumberSet((5, 19, 36, 49, 64), 12, line='A'),),
            confidence=0.91,
            raw_text='A. 05 19 36 49 64 12',
            strategy='direct_pattern',
            draw_date='2025-08-02',
            engine='tesseract',
        )
        scanner = use_scanner(result)

        code = cli.main(['scan', ticket_file, '--engine', 'alternate'])

        assert code == cli.EXIT_OK
        out = capsys.readouterr().out
        assert "A. 05 19 36 49 64 PB 12" in out
        assert "Draw date: 2025-08-02" in out
        assert scanner.images == [b'image bytes']
        assert scanner.recognizer.active == 'alternate'
        assert scanner.closed

    def test_json_output(self, use_scanner, ticket_file, capsys):
        use_scanner(ScanResult(number_sets=(), confidence=0.2, raw_text='', warnings=('No valid plays found',)))

        assert cli.main(['scan', ticket_file, '--json']) == cli.EXIT_OK

        payload = json.loads(capsys.readouterr().out)
        assert payload['total_plays'] == 0
        assert payload['warnings'] == ['No valid plays found']

    def test_recognition_failure(self, use_scanner, ticket_file):
        scanner = use_scanner(RecognitionFailure('Tesseract OCR executable not found'))

        assert cli.main(['scan', ticket_file]) == cli.EXIT_RECOGNITION_FAILED
        assert scanner.closed

    def test_missing_file(self, use_scanner, tmp_path):
        scanner = use_scanner(RecognitionFailure('unused'))

        assert cli.main(['scan', str(tmp_path / 'missing.png')]) == cli.EXIT_ERROR
        assert scanner.images == []


class TestOtherCommands:
    """draw and health subcommands"""

    def test_draw(self, use_draw, winning_draw, capsys):
        use_draw(winning_draw)

        assert cli.main(['draw']) == cli.EXIT_OK
        assert "2025-08-02: 12 23 34 45 56 PB 07 (Power Play x3) [ny_open_data]" in capsys.readouterr().out

    def test_health(self, use_draw, winning_draw, capsys):
        use_draw(winning_draw)

        assert cli.main(['health', '--json']) == cli.EXIT_OK
        assert json.loads(capsys.readouterr().out) == {'musl_api': False, 'ny_open_data': True}

    def test_invalid_config(self, tmp_path):
        path = tmp_path / 'bad.ini'
        path.write_text("[ocr]\nengine = cuneiform\n")

        assert cli.main(['--config', str(path), 'draw']) == cli.EXIT_ERROR
