import json

from conftest import FIXED_NOW, FakeSecrets, FakeTextract, line_blocks

from file_extraction import handlers
from file_extraction.pipeline import DeliveryNotifier, ExtractionOrchestrator, UploadUrlIssuer
from file_extraction.services.job_checkpoints import JobCheckpointStore
from file_extraction.services.notification_ledger import NotificationLedger

BUCKET = "uploads"
TOPIC = "arn:aws:sns:us-east-1:123:extraction"


def _notification(key: str) -> dict:
    return {"Records": [{"s3": {"bucket": {"name": BUCKET}, "object": {"key": key}}}]}


def test_issue_upload_url_returns_cors_envelope(monkeypatch, fake_s3, fake_sns):
    issuer = UploadUrlIssuer(s3_client=fake_s3, sns_client=fake_sns, bucket=BUCKET, topic_arn=TOPIC)
    monkeypatch.setattr(handlers.factory, "build_url_issuer", lambda: issuer)

    envelope = handlers.issue_upload_url(
        {"body": json.dumps({"fileName": "report.pdf", "email": "user@example.com", "fileType": "application/pdf"})}
    )

    assert envelope["statusCode"] == 200
    assert envelope["headers"]["Access-Control-Allow-Methods"] == "OPTIONS,POST"
    body = json.loads(envelope["body"])
    assert body["preSignedURL"].startswith("https://uploads.s3.amazonaws.com/incoming/report.pdf")


def test_issue_upload_url_rejects_missing_fields(monkeypatch):
    monkeypatch.setattr(handlers.factory, "build_url_issuer", lambda: None)

    envelope = handlers.issue_upload_url({"body": json.dumps({"email": "user@example.com"})})

    assert envelope["statusCode"] == 500
    assert "error" in json.loads(envelope["body"])


def test_end_to_end_report_pdf_yields_pair_and_single_notification(monkeypatch, fake_s3, fake_sns):
    fake_s3.seed(BUCKET, "incoming/report.pdf", tags={"email": "user@example.com"})
    textract = FakeTextract([{"JobStatus": "SUCCEEDED", "Blocks": line_blocks("hello", "world")}])
    orchestrator = ExtractionOrchestrator(s3_client=fake_s3, textract_client=textract, sleep=lambda _s: None)
    notifier = DeliveryNotifier(
        s3_client=fake_s3,
        sns_client=fake_sns,
        secrets_client=FakeSecrets(),
        ledger=NotificationLedger(s3_client=fake_s3, bucket=BUCKET),
        topic_arn=TOPIC,
        shorten=lambda *, long_url, access_token, base_url: long_url,
        clock=lambda: FIXED_NOW,
    )
    monkeypatch.setattr(handlers.factory, "build_extraction_orchestrator", lambda **_kwargs: orchestrator)
    monkeypatch.setattr(handlers.factory, "build_delivery_notifier", lambda **_kwargs: notifier)

    extracted = handlers.extract_text(_notification("incoming/report.pdf"))
    first = handlers.deliver_links(_notification("processed/report.pdf.txt"))
    second = handlers.deliver_links(_notification("processed/report.pdf.csv"))

    assert extracted["statusCode"] == 200
    assert [key for key in fake_s3.keys(BUCKET) if key.startswith("processed/")] == [
        "processed/report.pdf.csv",
        "processed/report.pdf.txt",
    ]
    assert first["statusCode"] == 200 and second["statusCode"] == 200
    assert len(fake_sns.published) == 1


def test_extract_text_reports_malformed_event():
    envelope = handlers.extract_text({"Records": []})

    assert envelope["statusCode"] == 500


def test_poll_pending_jobs_resumes_every_checkpoint(monkeypatch, fake_s3):
    from file_extraction.schemas.jobs import JobCheckpoint

    fake_s3.seed(BUCKET, "incoming/a.png", tags={"email": "user@example.com"})
    store = JobCheckpointStore(s3_client=fake_s3, bucket=BUCKET)
    store.save(JobCheckpoint(job_id="job-1", bucket=BUCKET, raw_key="incoming/a.png", started_at=FIXED_NOW))
    textract = FakeTextract([{"JobStatus": "SUCCEEDED", "Blocks": line_blocks("text")}])
    orchestrator = ExtractionOrchestrator(s3_client=fake_s3, textract_client=textract, checkpoints=store)
    monkeypatch.setattr(handlers.factory, "build_extraction_orchestrator", lambda **_kwargs: orchestrator)

    envelope = handlers.poll_pending_jobs({})

    assert envelope["statusCode"] == 200
    assert json.loads(envelope["body"])["jobs"] == {"job-1": "success"}
    assert store.list_keys() == []
    assert fake_s3.body(BUCKET, "processed/a.png.txt") == b"text"
