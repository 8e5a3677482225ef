"""
Listing image lifecycle.

An edit session is modelled as an immutable ``ImageForm``: every user action
(select a main file, add or remove an additional image) returns a new form.
``commit`` then talks to the object store in a fixed order:

  1. delete queued references (best-effort)
  2. upload the pending main file (placeholder on failure)
  3. upload pending additional files one by one (failures skipped)
  4. compose the final references, kept existing images first
"""
from __future__ import annotations

import logging
import os
import secrets
import string
import time
from dataclasses import dataclass, field, replace
from typing import Callable, Iterable
from urllib.parse import quote

from umkm.core.config import settings
from umkm.services.storage import ObjectStore, StorageError

log = logging.getLogger(__name__)

MAIN_FOLDER = "main"
ADDITIONAL_FOLDER = "additional"
DEFAULT_EXTENSION = "jpg"

_RANDOM_ALPHABET = string.ascii_lowercase + string.digits

ProgressCallback = Callable[[int], None]


@dataclass(frozen=True)
class PendingImage:
    """A local file selected for upload, not yet in the object store."""
    filename: str
    content_type: str
    data: bytes = field(repr=False)

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class ExistingImage:
    url: str


ImageAsset = PendingImage | ExistingImage


@dataclass(frozen=True)
class ImageRejection:
    filename: str
    reason: str


class MissingMainImageError(Exception):
    pass


@dataclass(frozen=True)
class ImageForm:
    main: ImageAsset | None = None
    additional: tuple[ImageAsset, ...] = ()
    deletion_queue: tuple[str, ...] = ()

    @classmethod
    def from_listing(cls, main_image: str | None, additional_images: Iterable[str]) -> "ImageForm":
        main = ExistingImage(main_image) if main_image and main_image.strip() else None
        return cls(main=main, additional=tuple(ExistingImage(u) for u in additional_images if u and u.strip()))

    @property
    def pending_count(self) -> int:
        pending = [a for a in self.additional if isinstance(a, PendingImage)]
        return len(pending) + (1 if isinstance(self.main, PendingImage) else 0)


def _queue(form: ImageForm, url: str) -> tuple[str, ...]:
    if url in form.deletion_queue:
        return form.deletion_queue
    return form.deletion_queue + (url,)


def select_main(form: ImageForm, image: PendingImage) -> ImageForm:
    """Replace the main slot; a previously stored main image is queued for deletion."""
    queue = _queue(form, form.main.url) if isinstance(form.main, ExistingImage) else form.deletion_queue
    return replace(form, main=image, deletion_queue=queue)


def remove_main(form: ImageForm) -> ImageForm:
    queue = _queue(form, form.main.url) if isinstance(form.main, ExistingImage) else form.deletion_queue
    return replace(form, main=None, deletion_queue=queue)


def add_additional(form: ImageForm, image: PendingImage) -> ImageForm:
    return replace(form, additional=form.additional + (image,))


def remove_additional(form: ImageForm, index: int) -> ImageForm:
    if index < 0 or index >= len(form.additional):
        raise IndexError(f"No additional image at index {index}")
    removed = form.additional[index]
    queue = _queue(form, removed.url) if isinstance(removed, ExistingImage) else form.deletion_queue
    additional = form.additional[:index] + form.additional[index + 1 :]
    return replace(form, additional=additional, deletion_queue=queue)


def remove_existing(form: ImageForm, url: str) -> ImageForm:
    """Remove a stored image by URL from whichever slot holds it."""
    if isinstance(form.main, ExistingImage) and form.main.url == url:
        return remove_main(form)
    for index, asset in enumerate(form.additional):
        if isinstance(asset, ExistingImage) and asset.url == url:
            return remove_additional(form, index)
    return form


def validate_image(image: PendingImage) -> ImageRejection | None:
    if image.size > settings.max_image_bytes:
        limit_mb = settings.max_image_bytes // (1024 * 1024)
        return ImageRejection(image.filename, f"File is larger than {limit_mb}MB")
    if (image.content_type or "").lower() not in settings.allowed_image_types:
        return ImageRejection(image.filename, f"Unsupported file type: {image.content_type or 'unknown'}")
    return None


def apply_changes(
    form: ImageForm,
    *,
    main_file: PendingImage | None = None,
    additional_files: Iterable[PendingImage] = (),
    remove_urls: Iterable[str] = (),
) -> tuple[ImageForm, list[ImageRejection]]:
    """Fold one submit's worth of user actions into the form; rejected files never land in a slot."""
    rejections: list[ImageRejection] = []
    for url in remove_urls:
        form = remove_existing(form, url)

    if main_file is not None:
        rejection = validate_image(main_file)
        if rejection:
            rejections.append(rejection)
        else:
            form = select_main(form, main_file)

    for image in additional_files:
        rejection = validate_image(image)
        if rejection:
            rejections.append(rejection)
        else:
            form = add_additional(form, image)

    return form, rejections


def build_object_path(folder: str, filename: str, *, now_ms: int | None = None) -> str:
    # <folder>/<epoch-ms>-<6 random chars>.<ext>
    ext = os.path.splitext(filename or "")[1].lstrip(".").lower() or DEFAULT_EXTENSION
    stamp = now_ms if now_ms is not None else int(time.time() * 1000)
    suffix = "".join(secrets.choice(_RANDOM_ALPHABET) for _ in range(6))
    name = f"{stamp}-{suffix}.{ext}"
    return f"{folder}/{name}" if folder else name


def placeholder_url(label: str) -> str:
    return settings.placeholder_image_template.format(label=quote(label or "UMKM", safe=""))


@dataclass
class ImageCommit:
    main_image: str
    additional_images: list[str]
    uploaded: list[str] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    used_placeholder: bool = False
    progress: list[int] = field(default_factory=list)


class _Progress:
    def __init__(self, callback: ProgressCallback | None, sink: list[int]):
        self._callback = callback
        self._sink = sink

    def report(self, value: int) -> None:
        if self._sink and value <= self._sink[-1]:
            return
        self._sink.append(value)
        if self._callback is not None:
            self._callback(value)


async def upload_image(store: ObjectStore, image: PendingImage, folder: str) -> str | None:
    """Upload one file and return its public URL, or None on failure."""
    path = build_object_path(folder, image.filename)
    try:
        await store.upload(path=path, data=image.data, content_type=image.content_type)
    except (StorageError, OSError):
        log.warning("upload failed for %s -> %s", image.filename, path, exc_info=True)
        return None
    url = store.get_public_url(path)
    return url or None


async def delete_images(store: ObjectStore, urls: Iterable[str]) -> list[str]:
    """Best-effort removal; returns the URLs whose objects were removed."""
    deleted: list[str] = []
    for url in urls:
        path = store.path_from_url(url)
        if not path:
            log.info("skipping delete of foreign image url %s", url)
            continue
        try:
            removed = await store.remove([path])
        except (StorageError, OSError):
            log.warning("delete failed for %s", url, exc_info=True)
            continue
        if path in removed:
            deleted.append(url)
    return deleted


async def commit(
    store: ObjectStore,
    form: ImageForm,
    *,
    placeholder_label: str,
    on_progress: ProgressCallback | None = None,
) -> ImageCommit:
    if form.main is None:
        raise MissingMainImageError("Main image is required")

    progress_log: list[int] = []
    progress = _Progress(on_progress, progress_log)
    progress.report(10)

    # 1) deletions first
    deleted: list[str] = []
    if form.deletion_queue:
        deleted = await delete_images(store, form.deletion_queue)
    progress.report(15)

    # 2) main image
    progress.report(20)
    used_placeholder = False
    failed: list[str] = []
    uploaded_urls: list[str] = []
    if isinstance(form.main, PendingImage):
        uploaded = await upload_image(store, form.main, MAIN_FOLDER)
        if uploaded:
            main_image = uploaded
            uploaded_urls.append(uploaded)
        else:
            failed.append(form.main.filename)
            main_image = placeholder_url(placeholder_label)
            used_placeholder = True
    else:
        main_image = form.main.url
    progress.report(40)

    # 3) additional images, strictly one at a time
    queued = set(form.deletion_queue)
    kept = [a.url for a in form.additional if isinstance(a, ExistingImage) and a.url not in queued]
    pending = [a for a in form.additional if isinstance(a, PendingImage)]

    added: list[str] = []
    for i, image in enumerate(pending):
        url = await upload_image(store, image, ADDITIONAL_FOLDER)
        if url:
            added.append(url)
            uploaded_urls.append(url)
        else:
            failed.append(image.filename)
        progress.report(40 + (i + 1) * 40 // len(pending))

    progress.report(80)

    return ImageCommit(
        main_image=main_image,
        additional_images=kept + added,
        uploaded=uploaded_urls,
        deleted=deleted,
        failed=failed,
        used_placeholder=used_placeholder,
        progress=progress_log,
    )


async def purge_listing_images(store: ObjectStore, urls: Iterable[str]) -> list[str]:
    """Remove every stored image of a listing that is being deleted."""
    return await delete_images(store, [u for u in urls if u and u.strip()])
