from file_extraction.pipeline.delivery_notifier import DeliveryNotifier, compose_download_message
from file_extraction.pipeline.extraction_orchestrator import ExtractionOrchestrator
from file_extraction.pipeline.upload_intake import UploadIntake
from file_extraction.pipeline.url_issuer import UploadUrlIssuer

__all__ = [
    "DeliveryNotifier",
    "compose_download_message",
    "ExtractionOrchestrator",
    "UploadIntake",
    "UploadUrlIssuer",
]
