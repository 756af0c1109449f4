import pytest

from onetime.base32 import decode
from onetime.otp_cli import build_parser, main
from tests.conftest import RFC_SECRET_B32

RFC_SECRET_TEXT = RFC_SECRET_B32.replace(' ', '')


class TestNew:
    def test_default_secret(self, capsys):
        assert main(['new']) == 0
        out = capsys.readouterr().out.strip()
        assert len(decode(out)) == 20
        assert out == out.upper()
        assert out.count(' ') == 7

    def test_custom_format(self, capsys):
        assert main(['new', '--length', '10', '--no-spacing', '--padding', '--lowercase']) == 0
        out = capsys.readouterr().out.strip()
        assert len(out) == 16
        assert out == out.lower()
        assert len(decode(out)) == 10

    def test_length_out_of_range(self, capsys):
        assert main(['new', '--length', '2000']) == 2
        assert '[!]' in capsys.readouterr().err


class TestCode:
    def test_hotp(self, capsys):
        assert main(['code', '--secret', RFC_SECRET_B32, '--time-step', '0', '--counter', '1']) == 0
        out = capsys.readouterr().out
        assert '287 082' in out
        assert 'next counter = 2' in out

    def test_hotp_eight_digits(self, capsys):
        assert main(['code', '--secret', RFC_SECRET_TEXT, '--time-step', '0', '--digits', '8']) == 0
        assert '847 55 224' in capsys.readouterr().out

    def test_totp(self, capsys):
        assert main(['code', '--secret', RFC_SECRET_TEXT, '--algorithm', 'sha256']) == 0
        assert 'TOTP (6d, SHA256)' in capsys.readouterr().out

    def test_secret_from_environment(self, capsys, monkeypatch):
        monkeypatch.setenv('ONETIME_SECRET', RFC_SECRET_TEXT)
        assert main(['code', '--time-step', '0']) == 0
        assert '755 224' in capsys.readouterr().out

    def test_missing_secret(self, capsys, monkeypatch):
        monkeypatch.delenv('ONETIME_SECRET', raising=False)
        assert main(['code']) == 2
        assert 'Secret cannot be None' in capsys.readouterr().err

    def test_invalid_secret(self, capsys):
        assert main(['code', '--secret', 'ABC1']) == 2
        assert '[!]' in capsys.readouterr().err

    def test_counter_in_totp_mode(self, capsys):
        assert main(['code', '--secret', RFC_SECRET_TEXT, '--counter', '3']) == 2
        assert 'HOTP mode' in capsys.readouterr().err

    def test_digits_out_of_range(self, capsys):
        assert main(['code', '--secret', RFC_SECRET_TEXT, '--digits', '10']) == 2


class TestVerify:
    def test_valid_hotp(self, capsys):
        assert main(['verify', '--secret', RFC_SECRET_TEXT, '--time-step', '0', '--code', '755 224']) == 0
        out = capsys.readouterr().out
        assert '[+] HOTP code is VALID' in out
        assert 'next counter = 1' in out

    def test_future_hotp_code(self, capsys):
        args = ['verify', '--secret', RFC_SECRET_TEXT, '--time-step', '0', '--code', '359152']
        assert main(args) == 1
        assert main(args + ['--next', '2']) == 0
        assert 'next counter = 3' in capsys.readouterr().out

    def test_bad_code_format(self, capsys):
        assert main(['verify', '--secret', RFC_SECRET_TEXT, '--code', '12a456']) == 2
        assert 'only numbers' in capsys.readouterr().err


class TestWatch:
    def test_requires_totp(self, capsys):
        assert main(['watch', '--secret', RFC_SECRET_TEXT, '--time-step', '0']) == 2


def test_no_command_prints_help(capsys):
    assert main([]) == 0
    assert 'usage' in capsys.readouterr().out


def test_unknown_algorithm_rejected_by_parser():
    with pytest.raises(SystemExit):
        build_parser().parse_args(['code', '--algorithm', 'md5'])
