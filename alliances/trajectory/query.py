"""SQL over every exported run, backed by an in-memory DuckDB.

Each run directory under ``data_dir`` contributes its Parquet tables to
the ``decisions`` and ``cycles`` views; a ``filename`` column tells the
runs apart. Needs duckdb: ``pip install secret-alliances[data]``.
"""

from __future__ import annotations

from pathlib import Path

VIEWS = ("decisions", "cycles")


class DecisionQuery:
    """Analytical questions about clan decisions across campaign runs."""

    def __init__(self, data_dir: str = "data/trajectories"):
        try:
            import duckdb
        except ImportError:
            raise ImportError(
                "duckdb is required for trajectory queries.\n"
                "Install with: pip install secret-alliances[data]"
            ) from None
        self.data_dir = Path(data_dir)
        self._conn = duckdb.connect()
        self._views: set[str] = set()
        for view in VIEWS:
            files = self.data_dir / "*" / f"{view}.parquet"
            if not any(self.data_dir.glob(f"*/{view}.parquet")):
                continue
            self._conn.execute(
                f"CREATE VIEW {view} AS SELECT * FROM "
                f"read_parquet('{files.as_posix()}', union_by_name=true, filename=true)"
            )
            self._views.add(view)

    def sql(self, query: str, params: list | None = None) -> list[dict]:
        """Run a query against the ``decisions`` and ``cycles`` views.

        Returns:
            One dict per row, keyed by column name

        Raises:
            ValueError: If ``data_dir`` holds no exported runs
        """
        if not self._views:
            raise ValueError(
                f"No Parquet data found under {self.data_dir}; export a run first."
            )
        cursor = self._conn.execute(query, params or [])
        names = [column[0] for column in cursor.description]
        return [dict(zip(names, row, strict=True)) for row in cursor.fetchall()]

    def category_counts(self, run_id: str | None = None) -> dict[str, int]:
        """Fired decisions per category, optionally for one run."""
        clause, params = self._run_clause(run_id)
        rows = self.sql(
            f"SELECT category, COUNT(*) AS n FROM decisions {clause} GROUP BY category",
            params,
        )
        return {row["category"]: row["n"] for row in rows}

    def clan_timeline(self, clan_id: str, run_id: str | None = None) -> list[dict]:
        """Every decision one clan made, in day order."""
        clause, params = self._run_clause(run_id, "clan_id = ?")
        return self.sql(
            f"""
            SELECT day, category, label, utility, threshold, target_id, coalition_id
            FROM decisions {clause}
            ORDER BY day
            """,
            [*params, clan_id],
        )

    def betrayals(self) -> list[dict]:
        """Betrayals across all runs, grouped by run file."""
        return self.sql(
            """
            SELECT filename, day, clan_id, target_id, coalition_id, utility
            FROM decisions
            WHERE starts_with(label, 'betrayed_')
            ORDER BY filename, day
            """
        )

    def coalition_curve(self, run_id: str) -> list[dict]:
        """Active coalitions at the end of each day of one run."""
        clause, params = self._run_clause(run_id)
        return self.sql(
            f"SELECT day, active_coalitions, decisions FROM cycles {clause} ORDER BY day",
            params,
        )

    @staticmethod
    def _run_clause(run_id: str | None, *extra: str) -> tuple[str, list]:
        conditions = list(extra)
        params: list = []
        if run_id:
            conditions.insert(0, "contains(filename, ?)")
            params.append(run_id)
        return ("WHERE " + " AND ".join(conditions) if conditions else ""), params

    def close(self) -> None:
        self._conn.close()
