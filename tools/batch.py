"""
Batch face swapping: one source face applied to many target images.

Each target is handled independently. A failure on one target is recorded as
an error item and never stops the rest of the batch.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

from PIL import Image

from tools import region
from tools.composite_face import JPEG_QUALITY, MAX_SIZE, load_image, swap
from tools.errors import InvalidBatch
from tools.storage import OUTPUT, EphemeralStore, StoredFile

logger = logging.getLogger(__name__)

MAX_ITEMS = 20
MAX_WORKERS = 4

SUCCESS = "success"
ERROR = "error"


@dataclass(frozen=True)
class TargetImage:
    name: str
    data: bytes


@dataclass(frozen=True)
class ItemResult:
    original_name: str
    status: str
    output: Optional[StoredFile] = None
    url: Optional[str] = None
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == SUCCESS

    def to_dict(self) -> dict:
        if self.ok:
            return {
                "original": self.original_name,
                "processed": self.output.name,
                "url": self.url,
                "status": SUCCESS,
            }
        return {"original": self.original_name, "status": ERROR, "error": self.reason}


@dataclass(frozen=True)
class BatchResult:
    items: Tuple[ItemResult, ...]
    success_count: int

    @property
    def failure_count(self) -> int:
        return len(self.items) - self.success_count

    @property
    def message(self) -> str:
        return f"Successfully processed {self.success_count} images"


ProgressCallback = Callable[[int, ItemResult], None]


class BatchProcessor:
    def __init__(
        self,
        store: EphemeralStore,
        max_items: int = MAX_ITEMS,
        max_workers: int = MAX_WORKERS,
        max_size: int = MAX_SIZE,
        quality: int = JPEG_QUALITY,
    ):
        self.store = store
        self.max_items = max_items
        self.max_workers = max(1, max_workers)
        self.max_size = max_size
        self.quality = quality

    def validate(self, source: Optional[bytes], targets: Sequence[TargetImage]) -> None:
        if not source:
            raise InvalidBatch("Please upload a source face image")
        if not targets:
            raise InvalidBatch("Please upload at least one target image")
        if len(targets) > self.max_items:
            raise InvalidBatch(
                f"Too many target images: {len(targets)} (maximum {self.max_items})"
            )

    def process(
        self,
        source: Optional[bytes],
        targets: Sequence[TargetImage],
        on_item: Optional[ProgressCallback] = None,
    ) -> BatchResult:
        """
        Swap the source face into every target.

        Raises InvalidBatch before touching the store if the source is missing
        or the target count is outside 1..max_items. Otherwise always returns
        one ItemResult per target, in input order.
        """
        self.validate(source, targets)
        targets = list(targets)
        total = len(targets)
        logger.info("Processing %d images with source face", total)

        # the source face box does not change per target
        source_error: Optional[Exception] = None
        source_image = source_region = None
        try:
            source_image = load_image(source)
            source_region = region.estimate_for(source_image)
        except Exception as e:
            logger.warning("Source face unusable: %s", e)
            source_error = e

        def run(index: int) -> ItemResult:
            target = targets[index]
            logger.info("Processing image %d/%d", index + 1, total)
            if source_error is not None:
                item = ItemResult(
                    original_name=target.name, status=ERROR, reason=str(source_error)
                )
            else:
                try:
                    item = self._process_one(source_image, source_region, target)
                except Exception as e:
                    logger.warning("Face swap failed for %s: %s", target.name, e)
                    item = ItemResult(
                        original_name=target.name, status=ERROR, reason=str(e)
                    )
            self._notify(on_item, index, item)
            return item

        results: List[Optional[ItemResult]] = [None] * total
        with ThreadPoolExecutor(max_workers=min(self.max_workers, total)) as pool:
            futures = [pool.submit(run, i) for i in range(total)]
            for i, future in enumerate(futures):
                results[i] = future.result()

        success_count = sum(1 for item in results if item.ok)
        logger.info("Processed %d/%d images successfully", success_count, total)
        return BatchResult(items=tuple(results), success_count=success_count)

    def _process_one(
        self,
        source_image: Image.Image,
        source_region: region.Region,
        target: TargetImage,
    ) -> ItemResult:
        target_image = load_image(target.data)
        target_region = region.estimate_for(target_image)
        data = swap(
            source_image,
            source_region,
            target_image,
            target_region,
            max_size=self.max_size,
            quality=self.quality,
        )
        stored = self.store.put(OUTPUT, data, suffix=".jpg", prefix="swapped_")
        return ItemResult(
            original_name=target.name,
            status=SUCCESS,
            output=stored,
            url=self.store.url_for(stored),
        )

    @staticmethod
    def _notify(on_item: Optional[ProgressCallback], index: int, item: ItemResult) -> None:
        if on_item is None:
            return
        try:
            on_item(index, item)
        except Exception as e:
            logger.warning("Progress callback failed for item %d: %s", index, e)
