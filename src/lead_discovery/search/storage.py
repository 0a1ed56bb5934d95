"""SQLite-backed storage for search queries, results, analytics and analyses."""

import json
import logging
import sqlite3
from collections import Counter
from contextlib import contextmanager
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Union

from pydantic import BaseModel

from ..core.exceptions import QueryStorageError, ValidationError
from ..core.logging import get_logger
from ..models.analysis import AnalysisResult
from ..models.search import QueryAnalytics, RankedCount, SearchOptions, SearchResult

TIMEFRAMES = {
    "day": timedelta(days=1),
    "week": timedelta(days=7),
    "month": timedelta(days=30),
}


class QueryStorage:
    """
    SQLite-based store for the search history.

    Query and result writes are critical and raise ``QueryStorageError``.
    Analytics bookkeeping is best effort: failures are logged and swallowed.
    """

    def __init__(self, db_path: str, logger: Optional[logging.Logger] = None):
        self.db_path = db_path
        self.logger = logger or get_logger("query_storage")
        self._ensure_db_directory()
        self._init_database()
        self.logger.info(f"QueryStorage initialized with database at {self.db_path}")

    def _ensure_db_directory(self):
        """Ensure the database directory exists."""
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

    @contextmanager
    def _get_connection(self) -> Iterator[sqlite3.Connection]:
        """Open a connection, commit on success and always close it."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_database(self):
        """Initialize the database schema."""
        with self._get_connection() as conn:
            cursor = conn.cursor()

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS search_queries (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    query_text TEXT NOT NULL,
                    target_industry TEXT,
                    service_offering TEXT,
                    location TEXT,
                    max_results INTEGER,
                    user_id TEXT,
                    metadata TEXT DEFAULT '{}',
                    created_at TEXT NOT NULL
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS search_results (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    query_id INTEGER NOT NULL,
                    url TEXT NOT NULL,
                    title TEXT,
                    snippet TEXT,
                    rank INTEGER,
                    relevance_score REAL,
                    metadata TEXT DEFAULT '{}',
                    created_at TEXT NOT NULL,
                    FOREIGN KEY (query_id) REFERENCES search_queries(id) ON DELETE CASCADE
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS search_analytics (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    query_id INTEGER NOT NULL UNIQUE,
                    execution_time_ms REAL DEFAULT 0,
                    total_results INTEGER DEFAULT 0,
                    success INTEGER DEFAULT 1,
                    metadata TEXT DEFAULT '{}',
                    created_at TEXT NOT NULL,
                    FOREIGN KEY (query_id) REFERENCES search_queries(id) ON DELETE CASCADE
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS website_analyses (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    query_id INTEGER,
                    url TEXT NOT NULL,
                    summary TEXT,
                    emails TEXT DEFAULT '[]',
                    suggested_email TEXT,
                    metadata TEXT DEFAULT '{}',
                    analyzed_at TEXT NOT NULL,
                    FOREIGN KEY (query_id) REFERENCES search_queries(id) ON DELETE CASCADE
                )
            """)

            cursor.execute("CREATE INDEX IF NOT EXISTS idx_search_queries_created_at ON search_queries(created_at)")
            cursor.execute("CREATE INDEX IF NOT EXISTS idx_search_results_query_id ON search_results(query_id)")
            cursor.execute("CREATE INDEX IF NOT EXISTS idx_search_analytics_created_at ON search_analytics(created_at)")
            cursor.execute("CREATE INDEX IF NOT EXISTS idx_website_analyses_query_id ON website_analyses(query_id)")

    def save_query(
        self,
        query_text: str,
        options: Union[SearchOptions, Dict[str, Any], None] = None,
        user_id: Optional[str] = None,
        execution_time_ms: float = 0.0,
        metadata: Optional[Dict[str, Any]] = None
    ) -> int:
        """
        Store a search query.

        Args:
            query_text: The goal or query text
            options: Search options (industry, service, location, max_results)
            user_id: Opaque caller identifier
            execution_time_ms: Time spent producing the query
            metadata: Extra data stored as JSON

        Returns:
            The new query id

        Raises:
            QueryStorageError: If the insert fails
        """
        if isinstance(options, BaseModel):
            options = options.model_dump(exclude_none=True)
        options = options or {}
        now = datetime.utcnow().isoformat()

        try:
            with self._get_connection() as conn:
                cursor = conn.execute("""
                    INSERT INTO search_queries (query_text, target_industry, service_offering,
                                                location, max_results, user_id, metadata, created_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """, (
                    query_text,
                    options.get("target_industry"),
                    options.get("service_offering"),
                    options.get("location"),
                    options.get("max_results"),
                    user_id,
                    json.dumps({"options": options, **(metadata or {})}, default=str),
                    now
                ))
                query_id = cursor.lastrowid
        except sqlite3.Error as e:
            self.logger.error(f"Failed to save search query '{query_text}': {e}")
            raise QueryStorageError("Failed to save search query", e) from e

        self._save_query_analytics(query_id, execution_time_ms)
        self.logger.info(f"Saved search query {query_id}: {query_text}")
        return query_id

    def _save_query_analytics(self, query_id: int, execution_time_ms: float):
        try:
            with self._get_connection() as conn:
                conn.execute("""
                    INSERT INTO search_analytics (query_id, execution_time_ms, success, metadata, created_at)
                    VALUES (?, ?, 1, '{}', ?)
                """, (query_id, execution_time_ms, datetime.utcnow().isoformat()))
        except sqlite3.Error as e:
            self.logger.error(f"Failed to save query analytics for {query_id}: {e}")

    def record_outcome(self, query_id: int, success: bool, execution_time_ms: Optional[float] = None):
        """Update a query's analytics with its final outcome. Best effort."""
        try:
            with self._get_connection() as conn:
                if execution_time_ms is None:
                    conn.execute(
                        "UPDATE search_analytics SET success = ? WHERE query_id = ?",
                        (int(success), query_id)
                    )
                else:
                    conn.execute(
                        "UPDATE search_analytics SET success = ?, execution_time_ms = ? WHERE query_id = ?",
                        (int(success), execution_time_ms, query_id)
                    )
        except sqlite3.Error as e:
            self.logger.error(f"Failed to record outcome for query {query_id}: {e}")

    def save_results(self, query_id: int, results: List[SearchResult]):
        """
        Store the results of a query.

        Raises:
            QueryStorageError: If the insert fails
        """
        now = datetime.utcnow().isoformat()
        rows = [
            (
                query_id,
                result.url,
                result.title,
                result.snippet,
                result.rank,
                result.relevance_score,
                json.dumps({**result.metadata, "saved_at": now}, default=str),
                now
            )
            for result in results
        ]

        try:
            with self._get_connection() as conn:
                conn.executemany("""
                    INSERT INTO search_results (query_id, url, title, snippet, rank,
                                                relevance_score, metadata, created_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """, rows)
        except sqlite3.Error as e:
            self.logger.error(f"Failed to save {len(results)} search results for query {query_id}: {e}")
            raise QueryStorageError("Failed to save search results", e) from e

        self._update_analytics_with_results(query_id, len(results))
        self.logger.info(f"Saved {len(results)} search results for query {query_id}")

    def _update_analytics_with_results(self, query_id: int, result_count: int):
        try:
            with self._get_connection() as conn:
                conn.execute(
                    "UPDATE search_analytics SET total_results = ? WHERE query_id = ?",
                    (result_count, query_id)
                )
        except sqlite3.Error as e:
            self.logger.error(f"Failed to update analytics with results for query {query_id}: {e}")

    def get_results_for_query(self, query_id: int) -> List[SearchResult]:
        """Return a query's results ordered by rank."""
        try:
            with self._get_connection() as conn:
                rows = conn.execute(
                    "SELECT * FROM search_results WHERE query_id = ? ORDER BY rank ASC, id ASC",
                    (query_id,)
                ).fetchall()
        except sqlite3.Error as e:
            self.logger.error(f"Failed to fetch results for query {query_id}: {e}")
            raise QueryStorageError("Failed to fetch search results", e) from e

        return [
            SearchResult(
                url=row["url"],
                title=row["title"] or "",
                snippet=row["snippet"] or "",
                rank=row["rank"] or 0,
                relevance_score=row["relevance_score"] or 0.0,
                metadata=json.loads(row["metadata"] or "{}")
            )
            for row in rows
        ]

    def get_recent_queries(self, limit: int = 10) -> List[Dict[str, Any]]:
        """Return the newest queries with their analytics."""
        try:
            with self._get_connection() as conn:
                rows = conn.execute("""
                    SELECT q.*, a.execution_time_ms, a.total_results, a.success
                    FROM search_queries q
                    LEFT JOIN search_analytics a ON a.query_id = q.id
                    ORDER BY q.created_at DESC, q.id DESC
                    LIMIT ?
                """, (limit,)).fetchall()
        except sqlite3.Error as e:
            self.logger.error(f"Failed to fetch recent queries: {e}")
            raise QueryStorageError("Failed to fetch recent queries", e) from e

        queries = []
        for row in rows:
            record = dict(row)
            record["metadata"] = json.loads(record.get("metadata") or "{}")
            if record.get("success") is not None:
                record["success"] = bool(record["success"])
            queries.append(record)
        return queries

    def get_query_analytics(self, timeframe: str = "day") -> QueryAnalytics:
        """
        Aggregate query statistics.

        Args:
            timeframe: One of ``day``, ``week``, ``month``

        Raises:
            ValidationError: For an unknown timeframe
            QueryStorageError: If the database cannot be read
        """
        if timeframe not in TIMEFRAMES:
            raise ValidationError(f"Invalid timeframe: {timeframe}", field="timeframe")

        cutoff = (datetime.utcnow() - TIMEFRAMES[timeframe]).isoformat()

        try:
            with self._get_connection() as conn:
                analytics = conn.execute(
                    "SELECT * FROM search_analytics WHERE created_at >= ?", (cutoff,)
                ).fetchall()
                queries = conn.execute(
                    "SELECT target_industry, service_offering FROM search_queries WHERE created_at >= ?",
                    (cutoff,)
                ).fetchall()
        except sqlite3.Error as e:
            self.logger.error(f"Failed to get query analytics for {timeframe}: {e}")
            raise QueryStorageError("Failed to get query analytics", e) from e

        total = len(analytics)
        successful = sum(1 for row in analytics if row["success"])
        total_results = sum(row["total_results"] or 0 for row in analytics)
        total_time = sum(row["execution_time_ms"] or 0 for row in analytics)

        industries = Counter(row["target_industry"] for row in queries if row["target_industry"])
        services = Counter(row["service_offering"] for row in queries if row["service_offering"])

        return QueryAnalytics(
            total_queries=total,
            average_result_count=total_results / total if total else 0.0,
            top_industries=[RankedCount(name=name, count=count) for name, count in industries.most_common(5)],
            top_services=[RankedCount(name=name, count=count) for name, count in services.most_common(5)],
            query_success_rate=(successful / total) * 100 if total else 0.0,
            average_execution_time_ms=total_time / total if total else 0.0
        )

    def save_analysis(self, analysis: AnalysisResult, query_id: Optional[int] = None) -> int:
        """
        Store a website analysis.

        Raises:
            QueryStorageError: If the insert fails
        """
        try:
            with self._get_connection() as conn:
                cursor = conn.execute("""
                    INSERT INTO website_analyses (query_id, url, summary, emails, suggested_email,
                                                  metadata, analyzed_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                """, (
                    query_id,
                    analysis.url,
                    analysis.summary,
                    json.dumps(analysis.emails),
                    analysis.suggested_email,
                    analysis.metadata.model_dump_json(),
                    analysis.analyzed_at.isoformat()
                ))
                analysis_id = cursor.lastrowid
        except sqlite3.Error as e:
            self.logger.error(f"Failed to save analysis for {analysis.url}: {e}")
            raise QueryStorageError("Failed to save website analysis", e) from e

        self.logger.debug(f"Saved analysis {analysis_id} for {analysis.url}")
        return analysis_id

    def get_analyses_for_query(self, query_id: int) -> List[AnalysisResult]:
        """Return the analyses stored for a query, oldest first."""
        try:
            with self._get_connection() as conn:
                rows = conn.execute(
                    "SELECT * FROM website_analyses WHERE query_id = ? ORDER BY id ASC",
                    (query_id,)
                ).fetchall()
        except sqlite3.Error as e:
            self.logger.error(f"Failed to fetch analyses for query {query_id}: {e}")
            raise QueryStorageError("Failed to fetch website analyses", e) from e

        return [
            AnalysisResult(
                url=row["url"],
                summary=row["summary"] or "",
                emails=json.loads(row["emails"] or "[]"),
                suggested_email=row["suggested_email"] or "",
                metadata=json.loads(row["metadata"] or "{}"),
                analyzed_at=datetime.fromisoformat(row["analyzed_at"])
            )
            for row in rows
        ]
