"""Batch signing pipeline.

Turns every scanned image in a directory into ``signed_<stem>.pdf``:

    image --embed--> processed_<stem>.pdf
    identity --render--> signature_<stem>.jpg
    both --composite--> with_signature_image_processed_<stem>.pdf
         --placeholder--> (in memory) --sign--> signed_<stem>.pdf

Each image is an independent run with its own state machine. A failing run
is recorded and the batch moves on. Intermediates are always deleted.

Constraints:
- No stdout/stderr output (no print)
- No sys.exit()
- No argparse imports
- Returns structured results, never raises on per-image errors
"""

from __future__ import annotations

import enum
import logging
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from .constants import (
    ARTIFACT_COMPOSITED_PREFIX,
    ARTIFACT_PROCESSED_PREFIX,
    ARTIFACT_SIGNATURE_PREFIX,
    ARTIFACT_SIGNED_PREFIX,
    DEFAULT_DIGEST,
    SOURCE_IMAGE_SUFFIXES,
)
from .core.appearance import write_signature_image
from .core.credential import certificate_subject, estimate_signature_capacity
from .core.files import atomic_write, remove_artifacts
from .core.identity import SignerIdentity, is_authorized
from .core.pdf import add_signature_placeholder, composite_signature_image, embed_image_as_pdf
from .core.signing import sign_prepared_pdf
from .errors import AuthorizationError, ConfigError, NotFoundError, ScanSignError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .config import Settings
    from .core.credential import Credential

__all__ = [
    "BatchReport",
    "PipelineRun",
    "RunOutcome",
    "RunState",
    "SigningPipeline",
    "discover_source_images",
]

_logger = logging.getLogger(__name__)

_ARTIFACT_PREFIXES = (
    ARTIFACT_PROCESSED_PREFIX,
    ARTIFACT_SIGNATURE_PREFIX,
    ARTIFACT_COMPOSITED_PREFIX,
    ARTIFACT_SIGNED_PREFIX,
)


class RunState(enum.Enum):
    """Stages of a single image run, in order."""

    START = "start"
    IMAGE_EMBEDDED = "image_embedded"
    SIGNATURE_RENDERED = "signature_rendered"
    COMPOSITED = "composited"
    PLACEHOLDER_INJECTED = "placeholder_injected"
    SIGNED = "signed"
    CLEANED_UP = "cleaned_up"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (RunState.CLEANED_UP, RunState.FAILED)


# ── Result types ──────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class RunOutcome:
    """Result of one image run.

    Attributes:
        source: The scanned image.
        state: Terminal state (CLEANED_UP or FAILED).
        failed_at: State the run was in when it failed.
        output_path: Signed PDF, on success.
        error_message: Failure description, on failure.
        leftover: Intermediates that could not be deleted.
        history: States the run went through, START first.
    """

    source: Path
    state: RunState
    failed_at: RunState | None = None
    output_path: Path | None = None
    error_message: str | None = None
    leftover: tuple[Path, ...] = ()
    history: tuple[RunState, ...] = ()

    @property
    def ok(self) -> bool:
        return self.state is RunState.CLEANED_UP


@dataclass(frozen=True, slots=True)
class BatchReport:
    """Outcomes of every run in a batch, in processing order."""

    directory: Path
    outcomes: tuple[RunOutcome, ...]

    @property
    def ok(self) -> bool:
        return all(o.ok for o in self.outcomes)

    @property
    def succeeded(self) -> list[RunOutcome]:
        return [o for o in self.outcomes if o.ok]

    @property
    def failed(self) -> list[RunOutcome]:
        return [o for o in self.outcomes if not o.ok]


# ── Per-image run state ───────────────────────────────────────────


@dataclass
class PipelineRun:
    """Mutable state of one image run: artifact paths and current stage."""

    source: Path
    run_id: str | None = None
    state: RunState = RunState.START
    history: list[RunState] = field(default_factory=lambda: [RunState.START])

    def _artifact(self, prefix: str, suffix: str) -> Path:
        stem = self.source.stem
        if self.run_id:
            stem = f"{stem}.{self.run_id}"
        return self.source.with_name(f"{prefix}{stem}{suffix}")

    @property
    def processed_path(self) -> Path:
        return self._artifact(ARTIFACT_PROCESSED_PREFIX, ".pdf")

    @property
    def signature_path(self) -> Path:
        return self._artifact(ARTIFACT_SIGNATURE_PREFIX, ".jpg")

    @property
    def composited_path(self) -> Path:
        return self.processed_path.with_name(ARTIFACT_COMPOSITED_PREFIX + self.processed_path.name)

    @property
    def signed_path(self) -> Path:
        return self.source.with_name(f"{ARTIFACT_SIGNED_PREFIX}{self.source.stem}.pdf")

    @property
    def intermediates(self) -> list[Path]:
        return [self.processed_path, self.signature_path, self.composited_path]

    def advance(self, state: RunState) -> None:
        if self.state.terminal:
            raise ScanSignError(f"Run for {self.source.name} already finished ({self.state.value})")
        self.state = state
        self.history.append(state)
        _logger.debug("%s: %s", self.source.name, state.value)


def discover_source_images(directory: str | Path) -> list[Path]:
    """List scanned images in a directory, sorted by name.

    Matches .jpg/.jpeg/.png (any case) and skips artifacts of earlier
    runs (processed_*, signature_*, with_signature_image_*, signed_*).

    Raises:
        NotFoundError: if the directory does not exist.
    """
    root = Path(directory)
    if not root.is_dir():
        raise NotFoundError(f"Directory not found: {root}")
    return sorted(
        p
        for p in root.iterdir()
        if p.is_file()
        and p.suffix.lower() in SOURCE_IMAGE_SUFFIXES
        and not p.name.startswith(_ARTIFACT_PREFIXES)
    )


# ── Pipeline ──────────────────────────────────────────────────────


class SigningPipeline:
    """Sign every scanned image of a directory with one credential.

    Args:
        settings: Resolved configuration (identity, reason, capacity, font).
        credential: Loaded PKCS#12 credential; shared read-only by all runs.
        unique_intermediates: Add a per-run id to intermediate file names
            so concurrent batches on one directory cannot collide.
        digest: Message digest for the CMS signature.
    """

    def __init__(
        self,
        settings: Settings,
        credential: Credential,
        *,
        unique_intermediates: bool = False,
        digest: str = DEFAULT_DIGEST,
    ) -> None:
        self.settings = settings
        self.credential = credential
        self.unique_intermediates = unique_intermediates
        self.digest = digest

        if not settings.tax_id:
            raise ConfigError("Signer tax ID is not configured")
        name = settings.signer_name or certificate_subject(credential)["name"]
        if not name:
            raise ConfigError("Signer name is not configured and the certificate has no CN")
        self.signer_name = name
        self.identity = SignerIdentity(name, settings.tax_id)

        estimate = estimate_signature_capacity(credential)
        if estimate > settings.capacity:
            _logger.warning(
                "Signature capacity %d bytes may be too small for this credential "
                "(estimated %d bytes)",
                settings.capacity,
                estimate,
            )

    def run(
        self, directory: str | Path, authorized_tax_ids: Iterable[str] | None = None
    ) -> BatchReport:
        """Process every source image in ``directory``.

        Images sharing a stem (a.jpg and a.png) would write the same
        signed_<stem>.pdf; only the first in name order is signed and the
        others fail without touching any file.

        Args:
            directory: Folder with the scanned images; outputs land beside them.
            authorized_tax_ids: When given, the signer's tax ID must be one of
                these (formatting ignored).

        Raises:
            NotFoundError: if the directory does not exist.
            AuthorizationError: if the signer is not in ``authorized_tax_ids``.
        """
        if authorized_tax_ids is not None and not is_authorized(
            self.settings.tax_id, authorized_tax_ids
        ):
            raise AuthorizationError(f"Tax ID {self.settings.tax_id} is not authorized to sign")

        root = Path(directory)
        sources = discover_source_images(root)
        _logger.info("Found %d image(s) in %s", len(sources), root)

        outcomes: list[RunOutcome] = []
        claimed: dict[Path, Path] = {}
        for source in sources:
            signed_path = PipelineRun(source).signed_path
            if signed_path in claimed:
                outcomes.append(self._reject_duplicate(source, claimed[signed_path]))
                continue
            claimed[signed_path] = source
            outcomes.append(self.process(source))

        report = BatchReport(directory=root, outcomes=tuple(outcomes))
        _logger.info(
            "Batch finished: %d signed, %d failed", len(report.succeeded), len(report.failed)
        )
        return report

    def process(self, source: Path) -> RunOutcome:
        """Run the full pipeline for one image. Never raises on stage errors."""
        run = PipelineRun(source, uuid.uuid4().hex[:8] if self.unique_intermediates else None)
        identity = self.identity.stamped()
        try:
            self._execute(run, identity)
        except Exception as e:  # noqa: BLE001
            failed_at = run.state
            run.advance(RunState.FAILED)
            leftover = remove_artifacts(run.intermediates)
            return RunOutcome(
                source=source,
                state=RunState.FAILED,
                failed_at=failed_at,
                error_message=_describe_error(e, source),
                leftover=tuple(leftover),
                history=tuple(run.history),
            )

        leftover = remove_artifacts(run.intermediates)
        run.advance(RunState.CLEANED_UP)
        _logger.info("Signed %s -> %s", source.name, run.signed_path.name)
        return RunOutcome(
            source=source,
            state=RunState.CLEANED_UP,
            output_path=run.signed_path,
            leftover=tuple(leftover),
            history=tuple(run.history),
        )

    def _reject_duplicate(self, source: Path, claimed_by: Path) -> RunOutcome:
        """Fail a run whose signed output another image of the batch already owns."""
        run = PipelineRun(source)
        run.advance(RunState.FAILED)
        message = (
            f"{run.signed_path.name} is already produced from {claimed_by.name} in this batch; "
            f"rename {source.name} to sign it"
        )
        _logger.error("Skipping %s: %s", source.name, message)
        return RunOutcome(
            source=source,
            state=RunState.FAILED,
            failed_at=RunState.START,
            error_message=message,
            history=tuple(run.history),
        )

    def _execute(self, run: PipelineRun, identity: SignerIdentity) -> None:
        settings = self.settings

        embed_image_as_pdf(run.source, run.processed_path)
        run.advance(RunState.IMAGE_EMBEDDED)

        write_signature_image(identity, run.signature_path, settings.font_path)
        run.advance(RunState.SIGNATURE_RENDERED)

        composited = composite_signature_image(
            run.processed_path, run.signature_path, run.composited_path
        )
        run.advance(RunState.COMPOSITED)

        prepared, _, _ = add_signature_placeholder(
            composited,
            reason=settings.reason,
            name=identity.name,
            capacity=settings.capacity,
            signing_time=identity.timestamp,
        )
        run.advance(RunState.PLACEHOLDER_INJECTED)

        signed = sign_prepared_pdf(prepared, self.credential, self.digest)
        atomic_write(run.signed_path, signed)
        run.advance(RunState.SIGNED)


def _describe_error(error: Exception, source: Path) -> str:
    """Log a run failure and return its message."""
    if isinstance(error, (ScanSignError, OSError)):
        _logger.error("Failed to sign %s: %s", source.name, error)
        return str(error)
    _logger.exception("Unexpected error while signing %s", source.name)
    return f"Unexpected error: {error}"
