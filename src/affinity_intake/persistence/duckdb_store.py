"""DuckDB-backed storage for run records."""

import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Sequence

import duckdb
import polars as pl

from affinity_intake.runs.models import RUNS_TABLE_NAME, RunRecord

RUN_SCHEMA = {
    "id": pl.Utf8,
    "user_id": pl.Utf8,
    "status": pl.Utf8,
    "memo": pl.Utf8,
    "created_at": pl.Datetime("us"),
    "smiles": pl.Utf8,
    "sequence": pl.Utf8,
    "ligand_name": pl.Utf8,
    "gene_name": pl.Utf8,
    "indication_id": pl.Utf8,
    "target_identifier": pl.Utf8,
    "association_score": pl.Float64,
    "affinity_value": pl.Float64,
    "affinity_prob": pl.Float64,
    "input_hash": pl.Utf8,
    "warnings": pl.List(pl.Utf8),
    "model_version": pl.Utf8,
}

RUN_COLUMNS = list(RUN_SCHEMA)

LIST_COLUMNS = [
    "id",
    "status",
    "memo",
    "created_at",
    "warnings",
    "affinity_value",
    "affinity_prob",
    "ligand_name",
    "gene_name",
    "indication_id",
    "target_identifier",
    "association_score",
]

# Sort keys accepted by list_runs, mapped to ORDER BY clauses
SORT_ORDERS = {
    "created_at_desc": "created_at DESC",
    "created_at_asc": "created_at ASC",
    "status_asc": "status ASC",
    "status_desc": "status DESC",
    "affinity_value_desc": "affinity_value DESC NULLS LAST",
    "affinity_value_asc": "affinity_value ASC NULLS FIRST",
    "affinity_prob_desc": "affinity_prob DESC NULLS LAST",
    "affinity_prob_asc": "affinity_prob ASC NULLS FIRST",
}

DEFAULT_SORT = "created_at_desc"


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _placeholders(values: Sequence) -> str:
    return ", ".join("?" for _ in values)


class RunStore:
    """
    DuckDB storage for the runs table.

    Supports the queries the intake pipeline needs (done-run lookup by
    input hash, known association scores) plus filtered, sorted and
    paginated listing, and all-or-nothing batch inserts.

    One connection is shared by every caller; each public method holds
    an internal lock while it uses it, so concurrent API requests only
    serialize on the database work itself.
    """

    def __init__(self, db_path: Path):
        """
        Initialize RunStore with a DuckDB database.

        Args:
            db_path: Path to DuckDB database file. Parent directories
                     are created automatically.
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._lock = threading.RLock()
        self.conn = duckdb.connect(str(self.db_path))
        self.create_schema()

    def create_schema(self) -> None:
        """Create the runs table and its lookup indexes if missing."""
        self.conn.execute(f"""
            CREATE TABLE IF NOT EXISTS {RUNS_TABLE_NAME} (
                id VARCHAR PRIMARY KEY,
                user_id VARCHAR NOT NULL,
                status VARCHAR NOT NULL,
                memo VARCHAR,
                created_at TIMESTAMP NOT NULL,
                smiles VARCHAR,
                sequence VARCHAR,
                ligand_name VARCHAR,
                gene_name VARCHAR,
                indication_id VARCHAR,
                target_identifier VARCHAR,
                association_score DOUBLE,
                affinity_value DOUBLE,
                affinity_prob DOUBLE,
                input_hash VARCHAR,
                warnings VARCHAR[],
                model_version VARCHAR
            )
        """)
        self.conn.execute(
            f"CREATE INDEX IF NOT EXISTS idx_runs_input_hash ON {RUNS_TABLE_NAME} (input_hash)"
        )
        self.conn.execute(
            f"CREATE INDEX IF NOT EXISTS idx_runs_user ON {RUNS_TABLE_NAME} (user_id)"
        )

    def insert_runs(self, records: Sequence[RunRecord]) -> int:
        """
        Insert a batch of run records in one transaction.

        Either every record is stored or none is.

        Args:
            records: Records to insert

        Returns:
            Number of rows inserted

        Raises:
            duckdb.Error: If the insert fails (transaction rolled back)
        """
        if not records:
            return 0

        rows = []
        for record in records:
            row = record.to_row()
            row["created_at"] = _naive_utc(row["created_at"])
            rows.append(row)

        df = pl.DataFrame(rows, schema=RUN_SCHEMA)
        columns = ", ".join(RUN_COLUMNS)

        with self._lock:
            self.conn.register("incoming_runs", df.to_arrow())
            try:
                self.conn.begin()
                try:
                    self.conn.execute(
                        f"INSERT INTO {RUNS_TABLE_NAME} ({columns}) "
                        f"SELECT {columns} FROM incoming_runs"
                    )
                    self.conn.commit()
                except duckdb.Error:
                    self.conn.rollback()
                    raise
            finally:
                self.conn.unregister("incoming_runs")

        return len(rows)

    def find_done_runs(self, input_hashes: Sequence[str]) -> pl.DataFrame:
        """
        Fetch done runs whose input hash is in ``input_hashes``.

        Returns:
            DataFrame with input_hash, affinity_value, affinity_prob
        """
        if not input_hashes:
            return pl.DataFrame(schema={
                "input_hash": pl.Utf8,
                "affinity_value": pl.Float64,
                "affinity_prob": pl.Float64,
            })
        return self.execute_query(
            f"""
            SELECT input_hash, affinity_value, affinity_prob
            FROM {RUNS_TABLE_NAME}
            WHERE status = 'done'
              AND input_hash IN ({_placeholders(input_hashes)})
            ORDER BY created_at DESC
            """,
            list(input_hashes),
        )

    def find_association_scores(
        self,
        indication_id: str,
        target_identifiers: Sequence[str],
    ) -> pl.DataFrame:
        """
        Fetch non-null association scores recorded for an indication.

        Rows of any status and any submission qualify.

        Returns:
            DataFrame with target_identifier, association_score
        """
        if not target_identifiers:
            return pl.DataFrame(schema={
                "target_identifier": pl.Utf8,
                "association_score": pl.Float64,
            })
        return self.execute_query(
            f"""
            SELECT target_identifier, association_score
            FROM {RUNS_TABLE_NAME}
            WHERE indication_id = ?
              AND association_score IS NOT NULL
              AND target_identifier IN ({_placeholders(target_identifiers)})
            ORDER BY created_at DESC
            """,
            [indication_id, *target_identifiers],
        )

    def list_runs(
        self,
        user_id: str,
        search: Optional[str] = None,
        sort: str = DEFAULT_SORT,
        page: int = 0,
        page_size: int = 20,
    ) -> tuple[pl.DataFrame, int]:
        """
        List a user's runs.

        Args:
            user_id: Owner of the runs
            search: Case-insensitive substring of memo, ligand or gene name,
                    or an exact smiles/sequence
            sort: One of SORT_ORDERS
            page: Zero-based page index
            page_size: Rows per page

        Returns:
            Tuple of (page of runs, total matching row count)

        Raises:
            ValueError: If sort is unknown
        """
        if sort not in SORT_ORDERS:
            raise ValueError(f"Invalid sort: {sort}. Must be one of {list(SORT_ORDERS)}")

        where = "user_id = ?"
        params: list = [user_id]

        term = (search or "").strip()
        if term:
            where += """
              AND (contains(lower(coalesce(memo, '')), lower(?))
                   OR contains(lower(coalesce(ligand_name, '')), lower(?))
                   OR contains(lower(coalesce(gene_name, '')), lower(?))
                   OR smiles = ?
                   OR sequence = ?)
            """
            params.extend([term] * 5)

        with self._lock:
            total = self.conn.execute(
                f"SELECT COUNT(*) FROM {RUNS_TABLE_NAME} WHERE {where}",
                params,
            ).fetchone()[0]

            df = self.execute_query(
                f"""
                SELECT {", ".join(LIST_COLUMNS)}
                FROM {RUNS_TABLE_NAME}
                WHERE {where}
                ORDER BY {SORT_ORDERS[sort]}, id
                LIMIT ? OFFSET ?
                """,
                [*params, page_size, page * page_size],
            )
        return df, total

    def count_runs(self) -> int:
        """Total number of stored runs."""
        with self._lock:
            return self.conn.execute(f"SELECT COUNT(*) FROM {RUNS_TABLE_NAME}").fetchone()[0]

    def execute_query(
        self,
        query: str,
        params: Optional[list] = None
    ) -> pl.DataFrame:
        """
        Execute SQL query and return polars DataFrame.

        Args:
            query: SQL query to execute
            params: Optional query parameters

        Returns:
            Query results as polars DataFrame
        """
        with self._lock:
            if params:
                result = self.conn.execute(query, params)
            else:
                result = self.conn.execute(query)
            return result.pl()

    def close(self) -> None:
        """Close the DuckDB connection."""
        with self._lock:
            if self.conn:
                self.conn.close()
                self.conn = None

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit - closes connection."""
        self.close()
        return False

    @classmethod
    def from_config(cls, config: "IntakeConfig") -> "RunStore":
        """
        Create RunStore from an IntakeConfig.

        Args:
            config: IntakeConfig instance

        Returns:
            RunStore instance
        """
        return cls(config.duckdb_path)
