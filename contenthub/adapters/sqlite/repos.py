import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from contenthub.domain.entities import (
    AccessMode,
    Asset,
    AssetVersion,
    ShareEvent,
    ShareEventType,
    ShareLink,
    ShareLinkStatus,
    ShareRecipient,
    VersionStatus,
    make_event_sort_key,
)
from contenthub.domain.errors import Conflict, NotFound, StoreError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 5.0


# Helper to convert sqlite rows to dicts
def dict_factory(cursor: sqlite3.Cursor, row: Any) -> dict[str, Any]:
    d = {}
    for idx, col in enumerate(cursor.description):
        d[col[0]] = row[idx]
    return d


def format_dt(dt: datetime | None) -> str | None:
    """Fixed-width UTC ISO string so text comparison matches time order."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC).isoformat(timespec="microseconds")


def parse_dt(value: str | None) -> datetime | None:
    if not value:
        return None
    dt = datetime.fromisoformat(value)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt


def parse_uuid(value: str | None) -> UUID | None:
    return UUID(value) if value else None


class _SQLiteStore:
    def __init__(self, db_path: str, timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS):
        self.db_path = db_path
        self.timeout_seconds = timeout_seconds

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, timeout=self.timeout_seconds)
        conn.row_factory = dict_factory
        conn.execute("PRAGMA foreign_keys = ON;")
        return conn

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        # A fresh connection per call: every read sees the latest committed state.
        try:
            conn = self._get_conn()
        except sqlite3.Error as e:
            logger.error("Could not open %s: %s", self.db_path, e)
            raise StoreError(f"Storage unavailable: {e}") from e
        try:
            yield conn
        except sqlite3.IntegrityError:
            conn.rollback()
            raise
        except sqlite3.Error as e:
            conn.rollback()
            logger.error("SQLite operation failed on %s: %s", self.db_path, e)
            raise StoreError(f"Storage operation failed: {e}") from e
        finally:
            conn.close()


class SQLiteVersionStore(_SQLiteStore):
    # --- Assets ---

    def get_asset(self, asset_id: UUID) -> Asset | None:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM assets WHERE id = ?", (str(asset_id),)).fetchone()
            return self._map_asset(row) if row else None

    def save_asset(self, asset: Asset) -> Asset:
        with self._connect() as conn:
            row = conn.execute(
                """
                INSERT INTO assets (
                    id, title, owner_id, source_type, current_published_version_id,
                    deleted_at, created_at, updated_at
                ) VALUES (?, ?, ?, ?, NULL, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    title=excluded.title,
                    owner_id=excluded.owner_id,
                    source_type=excluded.source_type,
                    deleted_at=excluded.deleted_at,
                    updated_at=excluded.updated_at
                RETURNING *
            """,
                (
                    str(asset.id),
                    asset.title,
                    asset.owner_id,
                    asset.source_type,
                    format_dt(asset.deleted_at),
                    format_dt(asset.created_at),
                    format_dt(asset.updated_at),
                ),
            ).fetchone()
            conn.commit()
            return self._map_asset(row)

    # --- Versions ---

    def get_version(self, version_id: UUID) -> AssetVersion | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM asset_versions WHERE id = ?", (str(version_id),)
            ).fetchone()
            return self._map_version(row) if row else None

    def list_versions(self, asset_id: UUID) -> list[AssetVersion]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM asset_versions WHERE asset_id = ? ORDER BY version_number ASC",
                (str(asset_id),),
            ).fetchall()
            return [self._map_version(r) for r in rows]

    def max_version_number(self, asset_id: UUID) -> int:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT MAX(version_number) AS max_number FROM asset_versions WHERE asset_id = ?",
                (str(asset_id),),
            ).fetchone()
            return int(row["max_number"] or 0)

    def insert_version(self, version: AssetVersion) -> AssetVersion:
        try:
            with self._connect() as conn:
                row = conn.execute(
                    """
                    INSERT INTO asset_versions (
                        id, asset_id, version_number, status, storage_key, change_log,
                        publish_at, expire_at, published_at, published_by, created_by,
                        created_at, updated_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    RETURNING *
                """,
                    (
                        str(version.id),
                        str(version.asset_id),
                        version.version_number,
                        version.status.value,
                        version.storage_key,
                        version.change_log,
                        format_dt(version.publish_at),
                        format_dt(version.expire_at),
                        format_dt(version.published_at),
                        version.published_by,
                        version.created_by,
                        format_dt(version.created_at),
                        format_dt(version.updated_at),
                    ),
                ).fetchone()
                conn.commit()
                return self._map_version(row)
        except sqlite3.IntegrityError as e:
            if "UNIQUE" in str(e):
                raise Conflict(
                    f"Version number {version.version_number} already taken "
                    f"for asset {version.asset_id}"
                ) from e
            raise NotFound(f"Asset {version.asset_id} not found") from e

    def update_version(
        self,
        version: AssetVersion,
        expected_status: VersionStatus,
    ) -> AssetVersion:
        with self._connect() as conn:
            updated = self._write_version(conn, version, expected_status)
            conn.commit()
            return updated

    def publish_version(
        self,
        version: AssetVersion,
        expected_status: VersionStatus,
        expected_current_id: UUID | None,
        now: datetime,
    ) -> tuple[AssetVersion, Asset]:
        with self._connect() as conn:
            conn.execute("BEGIN IMMEDIATE")
            try:
                updated = self._write_version(conn, version, expected_status)
                if expected_current_id and expected_current_id != updated.id:
                    conn.execute(
                        """
                        UPDATE asset_versions SET status = 'deprecated', updated_at = ?
                        WHERE id = ? AND status = 'published'
                    """,
                        (format_dt(now), str(expected_current_id)),
                    )
                # Commit point
                row = conn.execute(
                    """
                    UPDATE assets
                    SET current_published_version_id = ?, updated_at = ?
                    WHERE id = ? AND current_published_version_id IS ?
                    RETURNING *
                """,
                    (
                        str(updated.id),
                        format_dt(now),
                        str(updated.asset_id),
                        str(expected_current_id) if expected_current_id else None,
                    ),
                ).fetchone()
                if not row:
                    raise Conflict(
                        f"Current version of asset {updated.asset_id} changed concurrently"
                    )
            except Conflict:
                conn.rollback()
                raise
            conn.commit()
            return updated, self._map_asset(row)

    def retire_version(
        self,
        version: AssetVersion,
        expected_status: VersionStatus,
        now: datetime,
    ) -> AssetVersion:
        with self._connect() as conn:
            conn.execute("BEGIN IMMEDIATE")
            try:
                updated = self._write_version(conn, version, expected_status)
            except (Conflict, NotFound):
                conn.rollback()
                raise
            conn.execute(
                """
                UPDATE assets SET current_published_version_id = NULL, updated_at = ?
                WHERE id = ? AND current_published_version_id = ?
            """,
                (format_dt(now), str(updated.asset_id), str(updated.id)),
            )
            conn.commit()
            return updated

    def _write_version(
        self,
        conn: sqlite3.Connection,
        version: AssetVersion,
        expected_status: VersionStatus,
    ) -> AssetVersion:
        """Conditional write of mutable fields. Does not commit."""
        row = conn.execute(
            """
            UPDATE asset_versions
            SET status = ?, change_log = ?, publish_at = ?, expire_at = ?,
                published_at = ?, published_by = ?, updated_at = ?
            WHERE id = ? AND status = ?
            RETURNING *
        """,
            (
                version.status.value,
                version.change_log,
                format_dt(version.publish_at),
                format_dt(version.expire_at),
                format_dt(version.published_at),
                version.published_by,
                format_dt(version.updated_at),
                str(version.id),
                expected_status.value,
            ),
        ).fetchone()

        if row:
            return self._map_version(row)

        current = conn.execute(
            "SELECT status FROM asset_versions WHERE id = ?", (str(version.id),)
        ).fetchone()
        if not current:
            raise NotFound(f"Version {version.id} not found")
        raise Conflict(
            f"Version {version.id} is {current['status']}, expected {expected_status.value}"
        )

    def list_due_scheduled(self, now: datetime, limit: int = 50) -> list[AssetVersion]:
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT * FROM asset_versions
                WHERE status = 'scheduled' AND publish_at IS NOT NULL AND publish_at <= ?
                ORDER BY publish_at ASC
                LIMIT ?
            """,
                (format_dt(now), limit),
            ).fetchall()
            return [self._map_version(r) for r in rows]

    def list_due_expiring(self, now: datetime, limit: int = 50) -> list[AssetVersion]:
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT * FROM asset_versions
                WHERE status = 'published' AND expire_at IS NOT NULL AND expire_at <= ?
                ORDER BY expire_at ASC
                LIMIT ?
            """,
                (format_dt(now), limit),
            ).fetchall()
            return [self._map_version(r) for r in rows]

    # --- Mapping ---

    def _map_asset(self, row: dict[str, Any]) -> Asset:
        return Asset(
            id=UUID(row["id"]),
            title=row["title"],
            owner_id=row["owner_id"],
            source_type=row["source_type"],
            current_published_version_id=parse_uuid(row["current_published_version_id"]),
            deleted_at=parse_dt(row["deleted_at"]),
            created_at=parse_dt(row["created_at"]),
            updated_at=parse_dt(row["updated_at"]),
        )

    def _map_version(self, row: dict[str, Any]) -> AssetVersion:
        return AssetVersion(
            id=UUID(row["id"]),
            asset_id=UUID(row["asset_id"]),
            version_number=row["version_number"],
            status=VersionStatus(row["status"]),
            storage_key=row["storage_key"],
            change_log=row["change_log"],
            publish_at=parse_dt(row["publish_at"]),
            expire_at=parse_dt(row["expire_at"]),
            published_at=parse_dt(row["published_at"]),
            published_by=row["published_by"],
            created_by=row["created_by"],
            created_at=parse_dt(row["created_at"]),
            updated_at=parse_dt(row["updated_at"]),
        )


class SQLiteShareLinkStore(_SQLiteStore):
    # --- Links ---

    def create_share_link(
        self,
        link: ShareLink,
        recipients: list[ShareRecipient],
    ) -> ShareLink:
        try:
            with self._connect() as conn:
                conn.execute(
                    """
                    INSERT INTO share_links (
                        id, token, asset_id, version_id, status, expires_at,
                        expire_with_asset, access_mode, allow_download, last_access_at,
                        created_by, created_at, updated_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                    (
                        str(link.id),
                        link.token,
                        str(link.asset_id),
                        str(link.version_id) if link.version_id else None,
                        link.status.value,
                        format_dt(link.expires_at),
                        int(link.expire_with_asset),
                        link.access_mode.value,
                        int(link.allow_download),
                        format_dt(link.last_access_at),
                        link.created_by,
                        format_dt(link.created_at),
                        format_dt(link.updated_at),
                    ),
                )
                for recipient in recipients:
                    conn.execute(
                        """
                        INSERT INTO share_recipients (
                            id, share_link_id, email, verification_token,
                            verified, verified_at, created_at
                        ) VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                        (
                            str(recipient.id),
                            str(recipient.share_link_id),
                            recipient.email,
                            recipient.verification_token,
                            int(recipient.verified),
                            format_dt(recipient.verified_at),
                            format_dt(recipient.created_at),
                        ),
                    )
                conn.commit()
                return link
        except sqlite3.IntegrityError as e:
            raise Conflict(f"Share link could not be created: {e}") from e

    def get_share_link(self, link_id: UUID) -> ShareLink | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM share_links WHERE id = ?", (str(link_id),)
            ).fetchone()
            return self._map_link(row) if row else None

    def get_share_link_by_token(self, token: str) -> ShareLink | None:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM share_links WHERE token = ?", (token,)).fetchone()
            return self._map_link(row) if row else None

    def list_share_links(self, asset_id: UUID) -> list[ShareLink]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM share_links WHERE asset_id = ? ORDER BY created_at DESC",
                (str(asset_id),),
            ).fetchall()
            return [self._map_link(r) for r in rows]

    def update_share_link_status(
        self,
        link_id: UUID,
        expected_status: ShareLinkStatus,
        new_status: ShareLinkStatus,
        now: datetime,
    ) -> ShareLink | None:
        with self._connect() as conn:
            row = conn.execute(
                """
                UPDATE share_links
                SET status = ?, updated_at = ?
                WHERE id = ? AND status = ?
                RETURNING *
            """,
                (new_status.value, format_dt(now), str(link_id), expected_status.value),
            ).fetchone()
            conn.commit()
            return self._map_link(row) if row else None

    def touch_last_access(self, link_id: UUID, now: datetime) -> None:
        with self._connect() as conn:
            conn.execute(
                "UPDATE share_links SET last_access_at = ? WHERE id = ?",
                (format_dt(now), str(link_id)),
            )
            conn.commit()

    # --- Recipients ---

    def get_recipient(self, link_id: UUID, email: str) -> ShareRecipient | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM share_recipients WHERE share_link_id = ? AND email = ?",
                (str(link_id), email),
            ).fetchone()
            return self._map_recipient(row) if row else None

    def list_recipients(self, link_id: UUID) -> list[ShareRecipient]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM share_recipients WHERE share_link_id = ? ORDER BY email",
                (str(link_id),),
            ).fetchall()
            return [self._map_recipient(r) for r in rows]

    def mark_recipient_verified(self, recipient_id: UUID, now: datetime) -> ShareRecipient:
        with self._connect() as conn:
            row = conn.execute(
                """
                UPDATE share_recipients
                SET verified = 1, verified_at = COALESCE(verified_at, ?)
                WHERE id = ?
                RETURNING *
            """,
                (format_dt(now), str(recipient_id)),
            ).fetchone()
            conn.commit()
            if not row:
                raise NotFound("Recipient not found")
            return self._map_recipient(row)

    # --- Events ---

    def append_event(self, event: ShareEvent) -> ShareEvent:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO share_events (
                    id, share_link_id, sort_key, event_type, resolved_version_id,
                    ip_address, user_agent, email, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
                (
                    str(event.id),
                    str(event.share_link_id),
                    event.sort_key,
                    event.event_type.value,
                    str(event.resolved_version_id) if event.resolved_version_id else None,
                    event.ip_address,
                    event.user_agent,
                    event.email,
                    format_dt(event.created_at),
                ),
            )
            conn.commit()
            return event

    def list_events(
        self,
        link_id: UUID,
        since: datetime | None = None,
        limit: int = 100,
    ) -> list[ShareEvent]:
        lower = make_event_sort_key(link_id, since) if since else f"{link_id}#"
        # '$' sorts right after '#', closing the key range for this link
        upper = f"{link_id}$"
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT * FROM share_events
                WHERE sort_key >= ? AND sort_key < ?
                ORDER BY sort_key ASC, id ASC
                LIMIT ?
            """,
                (lower, upper, limit),
            ).fetchall()
            return [self._map_event(r) for r in rows]

    # --- Mapping ---

    def _map_link(self, row: dict[str, Any]) -> ShareLink:
        return ShareLink(
            id=UUID(row["id"]),
            token=row["token"],
            asset_id=UUID(row["asset_id"]),
            version_id=parse_uuid(row["version_id"]),
            status=ShareLinkStatus(row["status"]),
            expires_at=parse_dt(row["expires_at"]),
            expire_with_asset=bool(row["expire_with_asset"]),
            access_mode=AccessMode(row["access_mode"]),
            allow_download=bool(row["allow_download"]),
            last_access_at=parse_dt(row["last_access_at"]),
            created_by=row["created_by"],
            created_at=parse_dt(row["created_at"]),
            updated_at=parse_dt(row["updated_at"]),
        )

    def _map_recipient(self, row: dict[str, Any]) -> ShareRecipient:
        return ShareRecipient(
            id=UUID(row["id"]),
            share_link_id=UUID(row["share_link_id"]),
            email=row["email"],
            verification_token=row["verification_token"],
            verified=bool(row["verified"]),
            verified_at=parse_dt(row["verified_at"]),
            created_at=parse_dt(row["created_at"]),
        )

    def _map_event(self, row: dict[str, Any]) -> ShareEvent:
        return ShareEvent(
            id=UUID(row["id"]),
            share_link_id=UUID(row["share_link_id"]),
            event_type=ShareEventType(row["event_type"]),
            resolved_version_id=parse_uuid(row["resolved_version_id"]),
            ip_address=row["ip_address"],
            user_agent=row["user_agent"],
            email=row["email"],
            created_at=parse_dt(row["created_at"]),
        )
