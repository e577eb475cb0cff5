import json

from pool_monitor.services.archive import MATCHED_POOLS_FILE, WEBHOOK_LOG_FILE, WebhookArchive


def test_disabled_archive_writes_nothing(tmp_path):
    archive = WebhookArchive(None)

    archive.record_webhook([{"signature": "sig1"}])

    assert archive.enabled is False
    assert list(tmp_path.iterdir()) == []


def test_webhooks_appended_as_json_lines(tmp_path):
    archive = WebhookArchive(tmp_path / "logs")

    archive.record_webhook([{"signature": "sig1"}])
    archive.record_webhook([{"signature": "sig2"}])

    lines = (tmp_path / "logs" / WEBHOOK_LOG_FILE).read_text().splitlines()
    assert [json.loads(line)["payload"][0]["signature"] for line in lines] == ["sig1", "sig2"]
    assert "received_at" in json.loads(lines[0])


def test_pool_entries_recorded(tmp_path):
    archive = WebhookArchive(tmp_path)

    archive.record_pool({"pool_address": "PoolAcct", "apy": None})

    entry = json.loads((tmp_path / MATCHED_POOLS_FILE).read_text())
    assert entry["pool_address"] == "PoolAcct"
    assert entry["apy"] is None
    assert "recorded_at" in entry
