"""SQLite persistence for users, jobs, applications and job views.

Jobs are mirrored into an FTS5 index (title, description, company name) whose
bm25 rank is the text relevance signal used by search. Engagement counters are
only ever changed with in-SQL increments.
"""

import json
import re
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any, NamedTuple

from matchengine.core.schemas import (
    CandidateProfile,
    JobPosting,
    SearchQuery,
    SortMode,
)

_USERS_TABLE = """
CREATE TABLE IF NOT EXISTS users (
    id               INTEGER PRIMARY KEY AUTOINCREMENT,
    name             TEXT    NOT NULL DEFAULT '',
    email            TEXT    NOT NULL DEFAULT '',
    role             TEXT    NOT NULL DEFAULT 'candidate',
    skills           TEXT    NOT NULL DEFAULT '[]',
    experience_level TEXT    NOT NULL DEFAULT 'entry',
    bio              TEXT    NOT NULL DEFAULT ''
);
"""

_JOBS_TABLE = """
CREATE TABLE IF NOT EXISTS jobs (
    id               INTEGER PRIMARY KEY AUTOINCREMENT,
    employer_id      INTEGER NOT NULL DEFAULT 0,
    title            TEXT    NOT NULL,
    company_name     TEXT    NOT NULL DEFAULT '',
    location         TEXT    NOT NULL DEFAULT '',
    description      TEXT    NOT NULL DEFAULT '',
    job_type         TEXT    NOT NULL DEFAULT 'Full-time',
    salary_range     INTEGER NOT NULL DEFAULT 0,
    experience_level TEXT    NOT NULL DEFAULT 'entry',
    required_skills  TEXT    NOT NULL DEFAULT '[]',
    posted_at        TEXT    NOT NULL,
    is_active        INTEGER NOT NULL DEFAULT 1,
    views            INTEGER NOT NULL DEFAULT 0,
    applications     INTEGER NOT NULL DEFAULT 0
);
"""

_APPLICATIONS_TABLE = """
CREATE TABLE IF NOT EXISTS applications (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id     INTEGER NOT NULL,
    job_id      INTEGER NOT NULL,
    applied_at  TEXT    NOT NULL,
    UNIQUE(user_id, job_id)
);
"""

_JOB_VIEWERS_TABLE = """
CREATE TABLE IF NOT EXISTS job_viewers (
    job_id     INTEGER NOT NULL,
    user_id    INTEGER NOT NULL,
    viewed_at  TEXT    NOT NULL,
    PRIMARY KEY (job_id, user_id)
);
"""

_JOBS_FTS = """
CREATE VIRTUAL TABLE IF NOT EXISTS jobs_fts USING fts5(
    title, description, company_name,
    content='jobs', content_rowid='id'
);

CREATE TRIGGER IF NOT EXISTS jobs_fts_insert AFTER INSERT ON jobs BEGIN
    INSERT INTO jobs_fts(rowid, title, description, company_name)
    VALUES (new.id, new.title, new.description, new.company_name);
END;

CREATE TRIGGER IF NOT EXISTS jobs_fts_delete AFTER DELETE ON jobs BEGIN
    INSERT INTO jobs_fts(jobs_fts, rowid, title, description, company_name)
    VALUES ('delete', old.id, old.title, old.description, old.company_name);
END;

CREATE TRIGGER IF NOT EXISTS jobs_fts_update
AFTER UPDATE OF title, description, company_name ON jobs BEGIN
    INSERT INTO jobs_fts(jobs_fts, rowid, title, description, company_name)
    VALUES ('delete', old.id, old.title, old.description, old.company_name);
    INSERT INTO jobs_fts(rowid, title, description, company_name)
    VALUES (new.id, new.title, new.description, new.company_name);
END;
"""

_INDEXES = """
CREATE INDEX IF NOT EXISTS idx_jobs_active_posted ON jobs (is_active, posted_at);
CREATE INDEX IF NOT EXISTS idx_jobs_employer ON jobs (employer_id);
CREATE INDEX IF NOT EXISTS idx_applications_job ON applications (job_id);
CREATE INDEX IF NOT EXISTS idx_users_role ON users (role);
"""

# Sort modes that order directly on a column.
SORT_COLUMNS: dict[SortMode, str] = {
    SortMode.DATE: "posted_at",
    SortMode.SALARY: "salary_range",
    SortMode.POPULARITY: "applications",
}

_TOKEN_RE = re.compile(r"\w+", re.UNICODE)


def _casefold(value: Any) -> Any:
    return value.casefold() if isinstance(value, str) else value


def init_db(path: str | Path) -> sqlite3.Connection:
    """Create the database and tables, returning a connection.

    Registers a Unicode-aware ``casefold()`` SQL function; the built-in
    ``lower()`` only folds ASCII.
    """
    if str(path) != ":memory:":
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path))
    conn.row_factory = sqlite3.Row
    conn.create_function("casefold", 1, _casefold, deterministic=True)
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute(_USERS_TABLE)
    conn.execute(_JOBS_TABLE)
    conn.execute(_APPLICATIONS_TABLE)
    conn.execute(_JOB_VIEWERS_TABLE)
    conn.executescript(_JOBS_FTS)
    conn.executescript(_INDEXES)
    conn.commit()
    return conn


def _ts(value: datetime) -> str:
    return value.isoformat(timespec="microseconds")


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------


def insert_user(conn: sqlite3.Connection, profile: CandidateProfile) -> int:
    """Insert a user. An id of 0 lets the database assign one. Returns the id."""
    cursor = conn.execute(
        """
        INSERT INTO users (id, name, email, role, skills, experience_level, bio)
        VALUES (?, ?, ?, ?, ?, ?, ?)
        """,
        (
            profile.id or None,
            profile.name,
            profile.email,
            profile.role,
            json.dumps(list(profile.skills)),
            profile.experience_level.value,
            profile.bio,
        ),
    )
    conn.commit()
    return cursor.lastrowid or 0


def insert_job(conn: sqlite3.Connection, job: JobPosting) -> int:
    """Insert a job posting. An id of 0 lets the database assign one. Returns the id."""
    cursor = conn.execute(
        """
        INSERT INTO jobs
            (id, employer_id, title, company_name, location, description, job_type,
             salary_range, experience_level, required_skills, posted_at, is_active,
             views, applications)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            job.id or None,
            job.employer_id,
            job.title,
            job.company_name,
            job.location,
            job.description,
            job.job_type,
            job.salary_range,
            job.experience_level.value,
            json.dumps(list(job.required_skills)),
            _ts(job.posted_at),
            int(job.is_active),
            job.views,
            job.applications,
        ),
    )
    conn.commit()
    return cursor.lastrowid or 0


def insert_application(
    conn: sqlite3.Connection,
    user_id: int,
    job_id: int,
    applied_at: datetime | None = None,
) -> int | None:
    """Record an application and bump the job's application counter.

    Returns the application id, or None if the user already applied.
    """
    cursor = conn.execute(
        "INSERT OR IGNORE INTO applications (user_id, job_id, applied_at) VALUES (?, ?, ?)",
        (user_id, job_id, _ts(applied_at or datetime.now())),
    )
    if cursor.rowcount != 1:
        conn.rollback()
        return None
    application_id = cursor.lastrowid
    conn.execute(
        "UPDATE jobs SET applications = applications + 1 WHERE id = ?",
        (job_id,),
    )
    conn.commit()
    return application_id


def record_job_view(
    conn: sqlite3.Connection,
    job_id: int,
    viewer_id: int | None = None,
) -> bool:
    """Count a view of a job. Returns True if the view counter changed.

    Known viewers are counted once per job; anonymous views always count.
    """
    if viewer_id is not None:
        cursor = conn.execute(
            """
            INSERT OR IGNORE INTO job_viewers (job_id, user_id, viewed_at)
            SELECT ?, ?, ? WHERE EXISTS (SELECT 1 FROM jobs WHERE id = ?)
            """,
            (job_id, viewer_id, _ts(datetime.now()), job_id),
        )
        if cursor.rowcount != 1:
            conn.rollback()
            return False
    cursor = conn.execute("UPDATE jobs SET views = views + 1 WHERE id = ?", (job_id,))
    conn.commit()
    return cursor.rowcount == 1


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


def _user_from_row(row: sqlite3.Row) -> CandidateProfile:
    return CandidateProfile(
        id=row["id"],
        name=row["name"],
        email=row["email"],
        role=row["role"],
        skills=json.loads(row["skills"]),
        experience_level=row["experience_level"],
        bio=row["bio"],
    )


def _job_from_row(row: sqlite3.Row) -> JobPosting:
    return JobPosting(
        id=row["id"],
        employer_id=row["employer_id"],
        title=row["title"],
        company_name=row["company_name"],
        location=row["location"],
        description=row["description"],
        job_type=row["job_type"],
        salary_range=row["salary_range"],
        experience_level=row["experience_level"],
        required_skills=json.loads(row["required_skills"]),
        posted_at=datetime.fromisoformat(row["posted_at"]),
        is_active=bool(row["is_active"]),
        views=row["views"],
        applications=row["applications"],
    )


def get_user(conn: sqlite3.Connection, user_id: int) -> CandidateProfile | None:
    row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
    return _user_from_row(row) if row is not None else None


def get_job(conn: sqlite3.Connection, job_id: int) -> JobPosting | None:
    row = conn.execute("SELECT * FROM jobs WHERE id = ?", (job_id,)).fetchone()
    return _job_from_row(row) if row is not None else None


def list_unapplied_jobs(
    conn: sqlite3.Connection,
    user_id: int,
    limit: int,
) -> list[JobPosting]:
    """Active jobs the user has not applied to, newest first, at most ``limit``."""
    rows = conn.execute(
        """
        SELECT * FROM jobs
        WHERE is_active = 1
          AND id NOT IN (SELECT job_id FROM applications WHERE user_id = ?)
        ORDER BY posted_at DESC, id DESC
        LIMIT ?
        """,
        (user_id, limit),
    ).fetchall()
    return [_job_from_row(r) for r in rows]


def list_unapplied_candidates(
    conn: sqlite3.Connection,
    job_id: int,
    limit: int,
) -> list[CandidateProfile]:
    """Candidate-role users who have not applied to the job, by id, at most ``limit``."""
    rows = conn.execute(
        """
        SELECT * FROM users
        WHERE role = 'candidate'
          AND id NOT IN (SELECT user_id FROM applications WHERE job_id = ?)
        ORDER BY id
        LIMIT ?
        """,
        (job_id, limit),
    ).fetchall()
    return [_user_from_row(r) for r in rows]


def list_employer_jobs(conn: sqlite3.Connection, employer_id: int) -> list[JobPosting]:
    """All of an employer's jobs (active or not), newest first."""
    rows = conn.execute(
        "SELECT * FROM jobs WHERE employer_id = ? ORDER BY posted_at DESC, id DESC",
        (employer_id,),
    ).fetchall()
    return [_job_from_row(r) for r in rows]


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------


def to_fts_query(term: str) -> str | None:
    """Turn free text into an FTS5 query: any word token, each quoted.

    Returns None when the text has no searchable tokens.
    """
    tokens = _TOKEN_RE.findall(term)
    if not tokens:
        return None
    return " OR ".join('"{}"'.format(t.replace('"', '""')) for t in tokens)


def _filter_clause(query: SearchQuery) -> tuple[list[str], list[Any]]:
    """SQL predicates (over alias ``j``) for the query's structured filters."""
    clauses = ["j.is_active = 1"]
    params: list[Any] = []
    if query.location:
        clauses.append("instr(casefold(j.location), ?) > 0")
        params.append(query.location.casefold())
    if query.job_type:
        clauses.append("j.job_type = ?")
        params.append(query.job_type)
    if query.skills:
        placeholders = ", ".join("?" for _ in query.skills)
        clauses.append(
            "EXISTS (SELECT 1 FROM json_each(j.required_skills) AS s "
            f"WHERE casefold(s.value) IN ({placeholders}))"
        )
        params.extend(query.skills)
    if query.salary_min is not None:
        clauses.append("j.salary_range >= ?")
        params.append(query.salary_min)
    if query.salary_max is not None:
        clauses.append("j.salary_range <= ?")
        params.append(query.salary_max)
    if query.experience_level is not None:
        clauses.append("j.experience_level = ?")
        params.append(query.experience_level.value)
    return clauses, params


class TextHit(NamedTuple):
    """The columns relevance ranking needs for one full-text match."""

    job_id: int
    text_score: float
    applications: int
    posted_at: datetime


def search_text_hits(
    conn: sqlite3.Connection,
    query: SearchQuery,
    fts_query: str,
) -> list[TextHit]:
    """Every full-text match passing the filters, with its text score.

    The text score is negated bm25, higher is better. Only the ranking
    columns are read so the whole match set can be ranked in memory.
    """
    clauses, params = _filter_clause(query)
    sql = f"""
        SELECT j.id, j.applications, j.posted_at, -bm25(jobs_fts) AS text_score
        FROM jobs_fts
        JOIN jobs AS j ON j.id = jobs_fts.rowid
        WHERE jobs_fts MATCH ? AND {' AND '.join(clauses)}
    """
    rows = conn.execute(sql, [fts_query, *params]).fetchall()
    return [
        TextHit(
            job_id=r["id"],
            text_score=float(r["text_score"]),
            applications=r["applications"],
            posted_at=datetime.fromisoformat(r["posted_at"]),
        )
        for r in rows
    ]


def get_jobs(conn: sqlite3.Connection, job_ids: list[int]) -> list[JobPosting]:
    """Jobs for the given ids, in the given order; unknown ids are skipped."""
    if not job_ids:
        return []
    placeholders = ", ".join("?" for _ in job_ids)
    rows = conn.execute(
        f"SELECT * FROM jobs WHERE id IN ({placeholders})", job_ids,
    ).fetchall()
    by_id = {r["id"]: _job_from_row(r) for r in rows}
    return [by_id[i] for i in job_ids if i in by_id]


def search_jobs_sorted(
    conn: sqlite3.Connection,
    query: SearchQuery,
    sort: SortMode,
    limit: int,
    fts_query: str | None = None,
) -> list[JobPosting]:
    """Filtered jobs ordered by (sort column desc, id desc), keyset-paged by cursor.

    With ``fts_query`` only full-text matches are returned, in column order.
    The cursor is a job id: rows strictly after that job in the sort order are
    returned. If the cursor job no longer exists, rows with a smaller id are.
    """
    column = SORT_COLUMNS[sort]
    clauses, params = _filter_clause(query)
    if fts_query is not None:
        clauses.append("j.id IN (SELECT rowid FROM jobs_fts WHERE jobs_fts MATCH ?)")
        params.append(fts_query)
    if query.cursor is not None:
        row = conn.execute(
            f"SELECT {column} FROM jobs WHERE id = ?", (query.cursor,)
        ).fetchone()
        if row is not None:
            clauses.append(f"(j.{column} < ? OR (j.{column} = ? AND j.id < ?))")
            params.extend([row[column], row[column], query.cursor])
        else:
            clauses.append("j.id < ?")
            params.append(query.cursor)
    sql = f"""
        SELECT j.* FROM jobs AS j
        WHERE {' AND '.join(clauses)}
        ORDER BY j.{column} DESC, j.id DESC
        LIMIT ?
    """
    rows = conn.execute(sql, [*params, limit]).fetchall()
    return [_job_from_row(r) for r in rows]
