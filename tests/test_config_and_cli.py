import uuid

import pytest

import starling_roundup.cli as cli
from starling_roundup.config import Settings, load_settings
from starling_roundup.core.errors import error_for_status
from starling_roundup.starling.models import Account, Balance, SavingsGoal, TransferReceipt

ENV_KEYS = [
    "STARLING_API_URL",
    "STARLING_API_TOKEN",
    "HTTP_TIMEOUT_S",
    "RETRY_MAX_RETRIES",
    "RETRY_BASE_DELAY_S",
    "ROUNDUP_LOOKBACK_DAYS",
    "LOG_LEVEL",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    load_settings.cache_clear()
    yield
    load_settings.cache_clear()


def test_settings_defaults(monkeypatch):
    monkeypatch.setenv("STARLING_API_TOKEN", "tok")
    s = load_settings()
    assert s.starling_api_url == "https://api-sandbox.starlingbank.com"
    assert s.http_timeout_s == 5.0
    assert s.retry_max_retries == 3
    assert s.retry_base_delay_s == 1.0
    assert s.roundup_lookback_days == 7
    assert s.log_level == "INFO"


def test_settings_read_env_file(tmp_path):
    (tmp_path / ".env").write_text("STARLING_API_TOKEN=from-file\nRETRY_MAX_RETRIES=1\n", encoding="utf-8")
    s = load_settings()
    assert s.starling_api_token == "from-file"
    assert s.retry_max_retries == 1


def test_token_is_required():
    with pytest.raises(ValueError):
        load_settings()


def test_mask():
    assert cli.mask(None) == "None"
    assert cli.mask("abc") == "***"
    assert cli.mask("abcdefgh") == "abcd****"


def test_version_does_not_need_settings(capsys):
    assert cli.main(["--version"]) == 0
    assert capsys.readouterr().out.strip() == cli.__version__


def test_status_env_masks_token(monkeypatch, capsys):
    monkeypatch.setenv("STARLING_API_TOKEN", "supersecret")
    assert cli.main(["status-env"]) == 0
    out = capsys.readouterr().out
    assert "supe*******" in out
    assert "supersecret" not in out


class DummyClient:
    def __init__(self, accounts, balance=1000):
        self.account_id = uuid.uuid4()
        self._accounts = accounts
        self._balance = balance
        self.closed = False
        self.transfers = []

    def close(self):
        self.closed = True

    def list_accounts(self):
        return self._accounts

    def effective_balance(self, account_id):
        return Balance(effective_minor_units=self._balance)

    def list_goals(self, account_id):
        return [SavingsGoal(goal_id=uuid.uuid4(), name="Round Up Savings")]

    def create_goal(self, account_id, name, currency, target_minor_units):
        raise AssertionError("goal already exists")

    def transfer(self, account_id, goal_id, idempotency_token, amount_minor_units):
        self.transfers.append(amount_minor_units)
        return TransferReceipt(transfer_id="tr-cli")

    def fetch_between(self, account_id, category_id, dt_from, dt_to):
        from starling_roundup.starling.models import FeedItem

        return [FeedItem(id=uuid.uuid4(), amount_minor_units=a) for a in (450, 500, 1)]


def _account() -> Account:
    return Account(account_id=uuid.uuid4(), default_category_id=uuid.uuid4(), type="PRIMARY", currency="GBP")


def test_roundup_command_success(monkeypatch, capsys):
    monkeypatch.setenv("STARLING_API_TOKEN", "tok")
    dummy = DummyClient([_account()])
    monkeypatch.setattr(cli, "build_client", lambda settings: dummy)

    assert cli.main(["roundup"]) == 0

    out = capsys.readouterr().out
    assert "state = DONE" in out
    assert "amount_minor_units = 149" in out
    assert "transfer_id = tr-cli" in out
    assert dummy.transfers == [149]
    assert dummy.closed


def test_roundup_command_failure_exit_code(monkeypatch, capsys):
    monkeypatch.setenv("STARLING_API_TOKEN", "tok")
    dummy = DummyClient([])
    monkeypatch.setattr(cli, "build_client", lambda settings: dummy)

    assert cli.main(["roundup"]) == 1

    out = capsys.readouterr().out
    assert "error_code = AccountNotFound" in out
    assert "http_status = 404" in out
    assert dummy.closed


def test_roundup_command_insufficient_balance(monkeypatch, capsys):
    monkeypatch.setenv("STARLING_API_TOKEN", "tok")
    dummy = DummyClient([_account()], balance=100)
    monkeypatch.setattr(cli, "build_client", lambda settings: dummy)

    assert cli.main(["roundup"]) == 1
    assert "http_status = 422" in capsys.readouterr().out
    assert dummy.transfers == []


def test_orchestrator_uses_retry_settings(monkeypatch):
    monkeypatch.setenv("STARLING_API_TOKEN", "tok")
    monkeypatch.setenv("RETRY_MAX_RETRIES", "0")
    settings = Settings()

    class FailingClient(DummyClient):
        calls = 0

        def list_accounts(self):
            FailingClient.calls += 1
            raise error_for_status(500)

    orch = cli.build_orchestrator(settings, FailingClient([]))
    out = orch.run()

    assert out.error.kind.value == "InvalidAccountData"
    assert FailingClient.calls == 1


def test_accounts_command(monkeypatch, capsys):
    monkeypatch.setenv("STARLING_API_TOKEN", "tok")
    acc = _account()
    dummy = DummyClient([acc])
    monkeypatch.setattr(cli, "build_client", lambda settings: dummy)

    assert cli.main(["accounts"]) == 0
    out = capsys.readouterr().out
    assert "accounts_count = 1" in out
    assert str(acc.account_id) in out


def test_accounts_command_reports_client_error(monkeypatch, capsys):
    monkeypatch.setenv("STARLING_API_TOKEN", "tok")

    class UnauthorizedClient(DummyClient):
        def list_accounts(self):
            raise error_for_status(401)

    dummy = UnauthorizedClient([])
    monkeypatch.setattr(cli, "build_client", lambda settings: dummy)

    assert cli.main(["accounts"]) == 1
    out = capsys.readouterr().out
    assert "error_code = DownstreamClientError" in out
    assert "http_status = 502" in out
    assert dummy.closed


def test_accounts_command_retries_server_errors(monkeypatch, capsys):
    monkeypatch.setenv("STARLING_API_TOKEN", "tok")
    monkeypatch.setenv("RETRY_BASE_DELAY_S", "0")

    class FlakyClient(DummyClient):
        calls = 0

        def list_accounts(self):
            FlakyClient.calls += 1
            if FlakyClient.calls == 1:
                raise error_for_status(503)
            return super().list_accounts()

    dummy = FlakyClient([_account()])
    monkeypatch.setattr(cli, "build_client", lambda settings: dummy)

    assert cli.main(["accounts"]) == 0
    assert "accounts_count = 1" in capsys.readouterr().out
    assert FlakyClient.calls == 2
