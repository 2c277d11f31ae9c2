"""Submission pipeline: parse, pair, resolve, dedup, enrich, build, persist.

One submission is processed sequentially. Enrichment failures degrade to
missing values; store failures abort the submission before anything is
written, and the final insert is all-or-nothing.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

import duckdb
import structlog

from affinity_intake.api_clients.base import CachedAPIClient
from affinity_intake.config.schema import IntakeConfig
from affinity_intake.enrichment import (
    AssociationEnrichment,
    AssociationScoreFetcher,
    EnrichmentStage,
    NoEnrichment,
)
from affinity_intake.errors import InputValidationError, StoreError
from affinity_intake.gene_mapping import IdentifierResolver, normalize_ensembl_id
from affinity_intake.indications import is_valid_indication
from affinity_intake.pairs import (
    TargetInput,
    default_rules,
    generate_pairs,
    read_ligands,
    read_targets,
)
from affinity_intake.persistence import DedupIndex, RunStore
from affinity_intake.runs import RunRecord, RunSummary, build_runs
from affinity_intake.tabular import decode_upload, parse_tabular

logger = structlog.get_logger()


@dataclass
class Submission:
    """One upload of a ligand table and a target table.

    Attributes:
        ligand_data: Ligand file content (needs a smiles column)
        target_data: Target file content (needs a sequence column)
        memo: Free-text memo copied to every run
        indication_id: Indication for association scoring; None or blank
                       disables enrichment
    """
    ligand_data: bytes | str
    target_data: bytes | str
    memo: str = ""
    indication_id: Optional[str] = None


@dataclass
class SubmissionResult:
    records: list[RunRecord]
    summary: RunSummary


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def attach_identifiers(targets: list[TargetInput], resolved: dict[str, str]) -> None:
    """Set resolved_identifier on each target whose name was resolved."""
    for target in targets:
        if not target.name:
            continue
        target.resolved_identifier = (
            normalize_ensembl_id(target.name) or resolved.get(target.name)
        )


class SubmissionPipeline:
    """Turns a Submission into persisted run records."""

    def __init__(
        self,
        config: IntakeConfig,
        store: RunStore,
        resolver: IdentifierResolver,
        fetcher: AssociationScoreFetcher,
        clock: Callable[[], datetime] = _utcnow,
        client: Optional[CachedAPIClient] = None,
    ):
        self.config = config
        self.store = store
        self.client = client
        self.resolver = resolver
        self.fetcher = fetcher
        self.dedup_index = DedupIndex(store, chunk_size=config.dedup.chunk_size)
        self.clock = clock

    def enrichment_for(self, indication_id: Optional[str]) -> EnrichmentStage:
        """Pick the enrichment stage for a submission."""
        if not indication_id:
            return NoEnrichment()
        return AssociationEnrichment(indication_id, self.dedup_index, self.fetcher)

    def submit(self, submission: Submission, user_id: str) -> SubmissionResult:
        """
        Process one submission.

        Args:
            submission: Uploaded tables and form fields
            user_id: Verified id of the submitting user

        Returns:
            SubmissionResult with the inserted records and status summary

        Raises:
            ConfigurationError: If required server settings are missing
            InputValidationError: If the input is unusable (nothing stored)
            StoreError: If a store query or the insert fails (nothing stored)
        """
        self.config.require_server_settings(require_identity=False)
        model_version = self.config.model_version

        indication_id = (submission.indication_id or "").strip() or None
        if indication_id is not None and not is_valid_indication(indication_id):
            raise InputValidationError(f"Invalid indication: {indication_id}")

        ligands = read_ligands(parse_tabular(decode_upload(submission.ligand_data)))
        targets = read_targets(parse_tabular(decode_upload(submission.target_data)))
        if not ligands or not targets:
            raise InputValidationError("CSV files contain no data rows")

        log = logger.bind(user_id=user_id, indication_id=indication_id)
        log.info("submission_start", ligands=len(ligands), targets=len(targets))

        symbols = {target.name for target in targets if target.name}
        resolved = self.resolver.resolve(symbols) if symbols else {}
        attach_identifiers(targets, resolved)

        candidates = generate_pairs(
            ligands,
            targets,
            model_version,
            rules=default_rules(self.config.validation.max_sequence_length),
        )

        clean_hashes = {
            candidate.input_hash
            for candidate in candidates
            if candidate.input_hash and not candidate.warnings
        }
        prior_done = self.dedup_index.find_done(clean_hashes)

        enrichment = self.enrichment_for(indication_id)
        association_scores = enrichment.scores_for(
            candidate.target_identifier for candidate in candidates
        )

        records, summary = build_runs(
            candidates,
            prior_done,
            association_scores,
            user_id=user_id,
            memo=submission.memo,
            model_version=model_version,
            now=self.clock(),
            indication_id=indication_id,
        )

        try:
            self.store.insert_runs(records)
        except duckdb.Error as e:
            log.error("runs_insert_failed", record_count=len(records), error=str(e))
            raise StoreError("Failed to save runs") from e

        log.info("submission_complete", **summary.model_dump())
        return SubmissionResult(records=records, summary=summary)

    def close(self) -> None:
        """Release the store connection and the HTTP session."""
        self.store.close()
        if self.client is not None:
            self.client.close()

    @classmethod
    def from_config(
        cls,
        config: IntakeConfig,
        store: Optional[RunStore] = None,
        client: Optional[CachedAPIClient] = None,
    ) -> "SubmissionPipeline":
        """Wire a pipeline from configuration."""
        store = store or RunStore.from_config(config)
        client = client or CachedAPIClient.from_config(config)
        return cls(
            config=config,
            store=store,
            resolver=IdentifierResolver.from_config(config, client),
            fetcher=AssociationScoreFetcher.from_config(config, client),
            client=client,
        )
