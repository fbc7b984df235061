"""
Scan Engine
===========
Main orchestrator that combines image conditioning, OCR, text
normalization and answer detection into a batch pipeline.

Usage:
    engine = ScanEngine(EngineConfig(language="eng"))
    report = engine.process_paths(["shot1.png", "shots/"])
    print(report.document)

Architecture:
    Image → ImageConditioner → OcrBackend → TextNormalizer →
    AnswerRuleEngine → ImageResult → BatchReport

One failed image never aborts a batch: its error is recorded on its
ImageResult and the remaining images are processed.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, Optional, Union

from PIL import Image

from .conditioner import ConditionerOptions, ImageConditioner
from .errors import InvalidConfigError, OcrError
from .models import BatchReport, ImageResult, ItemStatus, PageSegmentationMode
from .normalizer import TextNormalizer
from .ocr import OcrBackend, ProgressCallback, TesseractBackend
from .rule_engine import AnswerRuleEngine
from .sources import load_image

logger = logging.getLogger(__name__)

LOG_FORMAT = "[%(asctime)s] %(levelname)-8s %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

BatchProgressCallback = Callable[[int, int], None]


@dataclass
class EngineConfig:
    """Configuration for the scan engine."""

    # OCR
    language: str = "eng"
    page_segmentation_mode: PageSegmentationMode = PageSegmentationMode.AUTO

    # Pipeline switches
    preprocess: bool = True
    detect_answers: bool = True
    conditioner: ConditionerOptions = field(default_factory=ConditionerOptions)

    # Processing
    parallel: int = 1

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None


class ScanEngine:
    """
    Batch screenshot scanner.

    The OCR backend is created once (or injected) and reused for every
    image. All other stages are stateless, so images can be processed on
    worker threads.
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        backend: Optional[OcrBackend] = None,
    ):
        self.config = config or EngineConfig()
        if self.config.parallel < 1:
            raise InvalidConfigError(
                f"parallel must be at least 1, got {self.config.parallel}"
            )
        if not self.config.language.strip():
            raise InvalidConfigError("language must not be empty")

        self._setup_logging()

        self.conditioner = ImageConditioner(self.config.conditioner)
        self.normalizer = TextNormalizer()
        self.rule_engine = AnswerRuleEngine()
        self.backend = backend or TesseractBackend()

    def _setup_logging(self):
        """Configure logging based on config."""
        log_level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        package_logger = logging.getLogger("quizlens")
        package_logger.setLevel(log_level)

        if not package_logger.handlers:
            console = logging.StreamHandler()
            console.setLevel(log_level)
            console.setFormatter(
                logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
            )
            package_logger.addHandler(console)
        else:
            for handler in package_logger.handlers:
                handler.setLevel(log_level)

        if self.config.log_file:
            log_path = Path(self.config.log_file).resolve()
            already_attached = any(
                isinstance(h, logging.FileHandler)
                and Path(h.baseFilename) == log_path
                for h in package_logger.handlers
            )
            if not already_attached:
                log_path.parent.mkdir(parents=True, exist_ok=True)
                file_handler = logging.FileHandler(log_path, encoding="utf-8")
                file_handler.setLevel(log_level)
                file_handler.setFormatter(
                    logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
                )
                package_logger.addHandler(file_handler)

    # ─── Single Image ─────────────────────────────────────────────────────────

    def process_image(
        self,
        image: Image.Image,
        source: str = "<memory>",
        progress_callback: Optional[ProgressCallback] = None,
    ) -> ImageResult:
        """
        Run the full pipeline on one decoded image.

        OCR failures do not raise: the item is marked failed and its text is
        treated as empty. Image errors (e.g. an empty bitmap) do raise, and
        are turned into failed items by the batch methods.

        Args:
            image: Source image (left unmodified).
            source: Name used in results and logs.
            progress_callback: OCR progress in [0.0, 1.0].

        Returns:
            ImageResult for this image.
        """
        start_time = time.time()
        result = ImageResult(
            source=source,
            width=image.width,
            height=image.height,
            preprocessed=self.config.preprocess,
        )

        ocr_input = image
        if self.config.preprocess:
            ocr_input = self.conditioner.condition(image)

        try:
            raw_text = self.backend.recognize(
                ocr_input,
                self.config.language,
                self.config.page_segmentation_mode,
                progress_callback=progress_callback,
            )
        except OcrError as e:
            logger.error(f"OCR failed for {source}: {e}")
            result.status = ItemStatus.FAILED
            result.error = str(e)
            raw_text = ""

        result.raw_text = raw_text or ""
        result.cleaned_text = self.normalizer.normalize(result.raw_text)
        result.answer = self.rule_engine.detect(
            result.cleaned_text, self.config.detect_answers
        )
        result.elapsed_seconds = round(time.time() - start_time, 3)

        if result.answer:
            logger.info(f"{source}: detected answer {result.answer.answer!r}")
        logger.info(
            f"Processed {source} in {result.elapsed_seconds:.2f}s "
            f"({len(result.cleaned_text)} chars)"
        )
        return result

    # ─── Batches ──────────────────────────────────────────────────────────────

    def process_paths(
        self,
        paths: Iterable[Union[str, Path]],
        progress_callback: Optional[BatchProgressCallback] = None,
    ) -> BatchReport:
        """Load and process image files, isolating per-file failures."""
        tasks = [
            (Path(p).name, lambda p=p: self.process_image(load_image(p), Path(p).name))
            for p in paths
        ]
        return self._run_batch(tasks, progress_callback)

    def process_images(
        self,
        named_images: Iterable[tuple[str, Image.Image]],
        progress_callback: Optional[BatchProgressCallback] = None,
    ) -> BatchReport:
        """Process already decoded images, isolating per-image failures."""
        tasks = [
            (name, lambda name=name, img=img: self.process_image(img, name))
            for name, img in named_images
        ]
        return self._run_batch(tasks, progress_callback)

    def _run_batch(
        self,
        tasks: list[tuple[str, Callable[[], ImageResult]]],
        progress_callback: Optional[BatchProgressCallback],
    ) -> BatchReport:
        total = len(tasks)
        start_time = time.time()
        logger.info(f"Starting batch of {total} image(s)")

        completed = 0

        def run(name: str, task: Callable[[], ImageResult]) -> ImageResult:
            try:
                return task()
            except Exception as e:
                logger.error(f"Failed to process {name}: {e}")
                return ImageResult(
                    source=name,
                    status=ItemStatus.FAILED,
                    error=str(e),
                )

        def advance():
            nonlocal completed
            completed += 1
            if progress_callback:
                progress_callback(completed, total)

        items: list[ImageResult] = []
        if self.config.parallel == 1 or total <= 1:
            for name, task in tasks:
                items.append(run(name, task))
                advance()
        else:
            with ThreadPoolExecutor(max_workers=self.config.parallel) as pool:
                futures = [pool.submit(run, name, task) for name, task in tasks]
                for future in futures:
                    items.append(future.result())
                    advance()

        report = BatchReport(items=items)
        elapsed = time.time() - start_time
        logger.info(
            f"Batch complete in {elapsed:.2f}s: "
            f"{report.succeeded} ok, {report.failed} failed, "
            f"{report.answered} answered"
        )
        return report
