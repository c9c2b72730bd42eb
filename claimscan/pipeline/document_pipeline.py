"""Sequential OCR and extraction pipeline over a batch of documents.

Documents are walked strictly in submission order with one OCR request
in flight at a time. A failure is recorded on the affected document and
the batch moves on. Batch progress is derived from the in-flight
document's position and its own request progress.
"""

import dataclasses
from collections.abc import Callable, Iterable

from claimscan.extraction.entity_extractor import EntityExtractor, ExtractionError
from claimscan.ocr.exceptions import OcrError
from claimscan.ocr.ocr_client import OcrClient
from claimscan.ocr.progress import overall_progress
from claimscan.utils.config import AppConfig
from claimscan.utils.logger import document_logger, get_logger

from .exceptions import PipelineBusyError
from .models import Document, DocumentSnapshot, ImageFile

logger = get_logger(__name__)

ProgressListener = Callable[[int], None]


class DocumentPipeline:
    """Drive submitted documents through OCR and entity extraction.

    The pipeline owns the visible document list and the batch progress
    value. Both are written only by the task running the batch; readers
    get snapshots.

    Args:
        ocr_client: Client used to recognize each document image.
        extractor: Entity extractor run over recognized text.
    """

    def __init__(
        self, ocr_client: OcrClient, extractor: EntityExtractor | None = None
    ) -> None:
        self.ocr_client = ocr_client
        self.extractor = extractor or EntityExtractor()
        self._documents: list[Document] = []
        self._staged: dict[str, ImageFile] = {}
        self._progress = 0
        self._listeners: list[ProgressListener] = []
        self._running = False

    @classmethod
    def from_config(cls, config: AppConfig) -> "DocumentPipeline":
        """Build a pipeline with components configured from ``config``."""
        return cls(
            OcrClient(config.ocr),
            EntityExtractor(confidence=config.extraction.confidence),
        )

    @property
    def documents(self) -> list[DocumentSnapshot]:
        """All visible documents in submission order."""
        return [doc.snapshot() for doc in self._documents]

    @property
    def pending(self) -> list[DocumentSnapshot]:
        """Documents staged for the next run."""
        return [doc.snapshot() for doc in self._documents if doc.id in self._staged]

    @property
    def progress(self) -> int:
        """Batch progress percentage of the current or last run."""
        return self._progress

    @property
    def is_running(self) -> bool:
        return self._running

    def get(self, document_id: str) -> DocumentSnapshot | None:
        for doc in self._documents:
            if doc.id == document_id:
                return doc.snapshot()
        return None

    def add_progress_listener(self, listener: ProgressListener) -> None:
        """Register a callback invoked with every progress update."""
        self._listeners.append(listener)

    def reset_progress(self) -> None:
        self._set_progress(0)

    def submit(self, files: Iterable[ImageFile]) -> list[DocumentSnapshot]:
        """Queue image files for the next run.

        Files that are not images are skipped. Every accepted file gets a
        new document, even if its filename was submitted before.

        Args:
            files: Raw image files in the order they should be processed.

        Returns:
            Snapshots of the newly queued documents.
        """
        queued: list[Document] = []
        for image in files:
            content_type = image.detected_content_type()
            if not (content_type and content_type.startswith("image/")):
                logger.warning(
                    "Skipping %s: unsupported type %s", image.filename, content_type
                )
                continue

            document = Document(filename=image.filename)
            self._documents.append(document)
            self._staged[document.id] = dataclasses.replace(
                image, content_type=content_type
            )
            queued.append(document)

        logger.info("Queued %d documents", len(queued))
        return [doc.snapshot() for doc in queued]

    async def run(self) -> list[DocumentSnapshot]:
        """Process every staged document in submission order.

        Returns:
            Final snapshots of the documents processed in this run.

        Raises:
            PipelineBusyError: If a batch is already running.
        """
        if self._running:
            raise PipelineBusyError("A batch is already running")

        batch = [
            (doc, self._staged[doc.id])
            for doc in self._documents
            if doc.id in self._staged
        ]
        if not batch:
            logger.info("No pending documents to process")
            return []

        self._running = True
        try:
            self._set_progress(0)
            for index, (document, image) in enumerate(batch):
                await self._process_one(document, image, index, len(batch))
            self._set_progress(100)
        finally:
            for document, _ in batch:
                self._staged.pop(document.id, None)
            self._running = False

        failed = sum(1 for doc, _ in batch if doc.error_message is not None)
        logger.info(
            "Batch finished: %d completed, %d failed", len(batch) - failed, failed
        )
        return [doc.snapshot() for doc, _ in batch]

    async def process(self, files: Iterable[ImageFile]) -> list[DocumentSnapshot]:
        """Submit ``files`` and run them as one batch."""
        self.submit(files)
        return await self.run()

    def clear(self) -> None:
        """Drop every document and staged file.

        Raises:
            PipelineBusyError: If a batch is running.
        """
        if self._running:
            raise PipelineBusyError("Cannot clear documents while a batch is running")
        logger.info("Clearing %d documents", len(self._documents))
        self._documents.clear()
        self._staged.clear()
        self.reset_progress()

    async def _process_one(
        self, document: Document, image: ImageFile, index: int, total: int
    ) -> None:
        log = document_logger(logger, document.id, document.filename)
        document.start()
        log.info("Processing [%d/%d]", index + 1, total)

        def on_progress(fraction: float) -> None:
            self._set_progress(overall_progress(total, index, fraction))

        try:
            text = await self.ocr_client.recognize(
                image.content,
                on_progress,
                filename=image.filename,
                content_type=image.content_type,
            )
            entities = self.extractor.extract(text)
        except (OcrError, ExtractionError) as exc:
            log.error("Processing failed: %s", exc)
            document.fail(str(exc))
            return
        except Exception as exc:
            log.exception("Unexpected processing error")
            document.fail(str(exc) or type(exc).__name__)
            return

        document.complete(text, entities)
        log.info("Completed with %d entities", len(entities))

    def _set_progress(self, value: int) -> None:
        self._progress = value
        for listener in self._listeners:
            listener(value)
