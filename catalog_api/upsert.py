"""
Entity upsert flow: multipart body → validated fields → stored assets → one write.

Assets are always written before the document that links to them, so a
stored reference never points at a file that did not exist at write time.
"""

from typing import Any, Awaitable, Callable, Dict, Iterable, Optional, Type

import structlog
from fastapi import Request
from pydantic import ValidationError as PydanticValidationError

from catalog.errors import NotFoundError, ValidationError
from catalog.models import CatalogModel
from catalog.repository import Document, Repository
from catalog.storage import UploadSink, unique_filename

from .multipart import FilePart, SplitBody, iter_request_parts, split_parts

logger = structlog.get_logger(__name__)

Prepare = Callable[[Dict[str, Any]], Awaitable[Dict[str, Any]]]

DEFAULT_FILE_FIELDS = ("image",)


def validate_fields(model: Type[CatalogModel], fields: Dict[str, str]) -> CatalogModel:
    """
    Validate raw form values against an input model.

    Raises:
        ValidationError: With one ``field: reason`` entry per problem
    """
    try:
        return model.model_validate(fields)
    except PydanticValidationError as e:
        problems = []
        for error in e.errors():
            location = ".".join(str(part) for part in error.get("loc", ())) or "body"
            problems.append(f"{location}: {error.get('msg')}")
        raise ValidationError(f"Invalid field(s): {'; '.join(problems)}") from e


class EntityUpsertFlow:
    """Composes the multipart splitter and the upload sink around one repository write."""

    def __init__(self, uploads: UploadSink, max_bytes: Optional[int] = None):
        self.uploads = uploads
        self.max_bytes = max_bytes

    async def read_body(
        self,
        request: Request,
        required_fields: Iterable[str] = (),
        required_files: Iterable[str] = ()
    ) -> SplitBody:
        """Split the request body, enforcing the size cap and required names."""
        return await split_parts(
            iter_request_parts(request, self.max_bytes),
            required_fields=required_fields,
            required_files=required_files,
            max_bytes=self.max_bytes,
        )

    async def store_files(
        self,
        files: Dict[str, FilePart],
        subdir: str,
        file_fields: Iterable[str] = DEFAULT_FILE_FIELDS
    ) -> Dict[str, str]:
        """
        Persist accepted file parts.

        Returns:
            Mapping of field name to the stored relative path
        """
        accepted = set(file_fields)
        stored = {}
        for name, part in files.items():
            if name not in accepted:
                logger.warning("Ignoring unexpected file field", field=name, filename=part.filename)
                continue
            stored[name] = await self.uploads.store(part.stream, subdir, unique_filename(part.filename))
        return stored

    @staticmethod
    def _report_orphans(assets: Dict[str, str], collection: str) -> None:
        for path in assets.values():
            logger.warning("Upload left without a referencing document", collection=collection, path=path)

    async def create(
        self,
        request: Request,
        repository: Repository,
        input_model: Type[CatalogModel],
        subdir: str,
        required_fields: Iterable[str] = (),
        required_files: Iterable[str] = (),
        file_fields: Iterable[str] = DEFAULT_FILE_FIELDS,
        prepare: Optional[Prepare] = None
    ) -> Document:
        """
        Create an entity from a multipart request.

        Args:
            request: Incoming request carrying the multipart body
            repository: Target repository
            input_model: Model validating the scalar fields
            subdir: Type-scoped upload directory
            required_fields: Names that must be present and non-empty
            required_files: File names that must be present
            file_fields: File field names that are accepted and stored
            prepare: Optional coroutine adjusting the document before any
                file is written (uniqueness checks, references, hashing)

        Returns:
            The created document
        """
        body = await self.read_body(request, required_fields, required_files)
        document = validate_fields(input_model, body.fields).to_document()
        if prepare is not None:
            document = await prepare(document)

        assets = await self.store_files(body.files, subdir, file_fields)
        document.update(assets)

        try:
            created = await repository.create(document)
        except Exception:
            self._report_orphans(assets, repository.name)
            raise

        logger.info("Created entity", collection=repository.name, id=created.get("_id"), assets=list(assets.values()))
        return created

    async def update(
        self,
        request: Request,
        repository: Repository,
        entity_id: str,
        patch_model: Type[CatalogModel],
        subdir: str,
        label: str,
        file_fields: Iterable[str] = DEFAULT_FILE_FIELDS,
        prepare: Optional[Prepare] = None
    ) -> Document:
        """
        Update an entity from a multipart request.

        Fields and files are all optional. Without a file part the existing
        asset reference is kept; with one it is replaced and the previous
        file stays on disk.

        Raises:
            NotFoundError: No entity with ``entity_id``
        """
        existing = await repository.find_by_id(entity_id)
        if existing is None:
            raise NotFoundError(f"{label} not found")

        body = await self.read_body(request)
        changes = validate_fields(patch_model, body.fields).to_document(partial=True)
        if prepare is not None:
            changes = await prepare(changes)

        assets = await self.store_files(body.files, subdir, file_fields)
        changes.update(assets)

        try:
            updated = await repository.update_by_id(entity_id, changes)
        except Exception:
            self._report_orphans(assets, repository.name)
            raise

        if updated is None:
            # Deleted between the lookup and the write
            self._report_orphans(assets, repository.name)
            raise NotFoundError(f"{label} not found")

        replaced = {name: existing.get(name) for name in assets if existing.get(name)}
        logger.info("Updated entity", collection=repository.name, id=entity_id, fields=sorted(changes), replaced_assets=replaced)
        return updated
