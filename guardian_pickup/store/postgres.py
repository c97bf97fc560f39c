"""
PostgreSQL credential store backed by an asyncpg pool.

Rotation is a single-row conditional UPDATE, so the token column goes from
the old value straight to the new one. Guardian creation and reactivation
lock the student row first, which serialises cap checks per student.
"""

import logging
from typing import Dict, List, Optional, Sequence

import asyncpg

from guardian_pickup.errors import LimitExceededError, TokenCollisionError
from .base import (
    ACTIVE,
    INACTIVE,
    PROFILE_FIELDS,
    DeviceRecord,
    GuardianRecord,
    GuardianStore,
    NewGuardian,
    SessionRecord,
    StaffRecord,
    StudentRecord,
)

logger = logging.getLogger(__name__)

GUARDIAN_COLUMNS = """
    id, student_id, name, relation, phone, email, national_id, address,
    emergency_contact, photo_url, status, profile_complete, qr_token,
    token_issued_at, created_by, created_at, updated_at
"""

SCHEMA = [
    # Students are owned by the school system; created here for standalone deployments.
    """
    CREATE TABLE IF NOT EXISTS students (
        id INTEGER PRIMARY KEY,
        name TEXT NOT NULL,
        branch_id INTEGER
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS pickup_guardians (
        id SERIAL PRIMARY KEY,
        student_id INTEGER NOT NULL REFERENCES students(id),
        name VARCHAR(100) NOT NULL,
        relation VARCHAR(50) NOT NULL,
        phone VARCHAR(20),
        email TEXT,
        national_id VARCHAR(50),
        address TEXT,
        emergency_contact VARCHAR(100),
        photo_url TEXT,
        status SMALLINT NOT NULL DEFAULT 1,
        profile_complete BOOLEAN NOT NULL DEFAULT false,
        qr_token VARCHAR(64) NOT NULL UNIQUE,
        token_issued_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        created_by TEXT,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_pickup_guardians_student ON pickup_guardians(student_id)",
    """
    CREATE TABLE IF NOT EXISTS guardian_sessions (
        id SERIAL PRIMARY KEY,
        auth_code_hash TEXT NOT NULL UNIQUE,
        guardian_id INTEGER NOT NULL REFERENCES pickup_guardians(id),
        student_id INTEGER NOT NULL REFERENCES students(id),
        first_time_login BOOLEAN NOT NULL DEFAULT false,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        revoked_at TIMESTAMPTZ
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS guardian_devices (
        session_id INTEGER PRIMARY KEY REFERENCES guardian_sessions(id) ON DELETE CASCADE,
        device_token TEXT,
        device_type TEXT NOT NULL,
        device_name TEXT NOT NULL,
        registered_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    """,
    # Published by the messaging system.
    """
    CREATE TABLE IF NOT EXISTS staff_directory (
        id INTEGER PRIMARY KEY,
        name TEXT NOT NULL,
        role TEXT NOT NULL,
        branch_id INTEGER,
        email TEXT,
        title TEXT,
        photo TEXT
    )
    """,
]


def _guardian(row) -> GuardianRecord:
    return GuardianRecord(
        pickup_card_id=row["id"],
        student_id=row["student_id"],
        name=row["name"],
        relation=row["relation"],
        phone=row["phone"],
        email=row["email"],
        national_id=row["national_id"],
        address=row["address"],
        emergency_contact=row["emergency_contact"],
        photo_url=row["photo_url"],
        status=row["status"],
        profile_complete=row["profile_complete"],
        qr_token=row["qr_token"],
        token_issued_at=row["token_issued_at"],
        created_by=row["created_by"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _session(row) -> SessionRecord:
    return SessionRecord(
        session_id=row["id"],
        auth_code_hash=row["auth_code_hash"],
        guardian_id=row["guardian_id"],
        student_id=row["student_id"],
        first_time_login=row["first_time_login"],
        created_at=row["created_at"],
        revoked_at=row["revoked_at"],
    )


def _device(row) -> DeviceRecord:
    return DeviceRecord(
        session_id=row["session_id"],
        device_token=row["device_token"],
        device_type=row["device_type"],
        device_name=row["device_name"],
        registered_at=row["registered_at"],
    )


class PostgresGuardianStore(GuardianStore):

    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool

    @classmethod
    async def connect(cls, dsn: str) -> "PostgresGuardianStore":
        pool = await asyncpg.create_pool(dsn)
        return cls(pool)

    async def initialize_schema(self):
        async with self.pool.acquire() as conn:
            for statement in SCHEMA:
                await conn.execute(statement)
        logger.info("Guardian credential schema ready")

    async def close(self):
        await self.pool.close()

    async def get_student(self, student_id: int) -> Optional[StudentRecord]:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                "SELECT id, name, branch_id FROM students WHERE id = $1",
                student_id
            )
        if not row:
            return None
        return StudentRecord(student_id=row["id"], name=row["name"], branch_id=row["branch_id"])

    async def list_guardians(
        self,
        student_ids: Optional[Sequence[int]] = None,
        branch_id: Optional[int] = None
    ) -> List[GuardianRecord]:
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                f"""
                SELECT {GUARDIAN_COLUMNS}
                FROM pickup_guardians
                WHERE ($1::INTEGER[] IS NULL OR student_id = ANY($1::INTEGER[]))
                  AND ($2::INTEGER IS NULL OR student_id IN (
                      SELECT id FROM students WHERE branch_id = $2
                  ))
                ORDER BY student_id, id
                """,
                list(student_ids) if student_ids is not None else None,
                branch_id
            )
        return [_guardian(row) for row in rows]

    async def count_active_guardians(self, student_id: int) -> int:
        async with self.pool.acquire() as conn:
            return await conn.fetchval(
                "SELECT COUNT(*) FROM pickup_guardians WHERE student_id = $1 AND status = $2",
                student_id, ACTIVE
            )

    async def create_guardian(self, new: NewGuardian, max_active: int) -> GuardianRecord:
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                await conn.execute("SELECT id FROM students WHERE id = $1 FOR UPDATE", new.student_id)

                active = await conn.fetchval(
                    "SELECT COUNT(*) FROM pickup_guardians WHERE student_id = $1 AND status = $2",
                    new.student_id, ACTIVE
                )
                if active >= max_active:
                    raise LimitExceededError()

                try:
                    row = await conn.fetchrow(
                        f"""
                        INSERT INTO pickup_guardians (student_id, name, relation, phone, qr_token, created_by)
                        VALUES ($1, $2, $3, $4, $5, $6)
                        RETURNING {GUARDIAN_COLUMNS}
                        """,
                        new.student_id, new.name, new.relation, new.phone, new.qr_token, new.created_by
                    )
                except asyncpg.exceptions.UniqueViolationError:
                    raise TokenCollisionError(new.qr_token)

        return _guardian(row)

    async def get_guardian(self, guardian_id: int) -> Optional[GuardianRecord]:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT {GUARDIAN_COLUMNS} FROM pickup_guardians WHERE id = $1",
                guardian_id
            )
        return _guardian(row) if row else None

    async def find_guardian_by_token(self, token: str) -> Optional[GuardianRecord]:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT {GUARDIAN_COLUMNS} FROM pickup_guardians WHERE qr_token = $1",
                token
            )
        return _guardian(row) if row else None

    async def swap_token(self, guardian_id: int, expected: str, new: str) -> Optional[GuardianRecord]:
        async with self.pool.acquire() as conn:
            try:
                row = await conn.fetchrow(
                    f"""
                    UPDATE pickup_guardians
                    SET qr_token = $3, token_issued_at = NOW(), updated_at = NOW()
                    WHERE id = $1 AND qr_token = $2
                    RETURNING {GUARDIAN_COLUMNS}
                    """,
                    guardian_id, expected, new
                )
            except asyncpg.exceptions.UniqueViolationError:
                raise TokenCollisionError(new)
        return _guardian(row) if row else None

    async def set_status(self, guardian_id: int, active: bool, max_active: int) -> Optional[GuardianRecord]:
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                current = await conn.fetchrow(
                    "SELECT student_id, status FROM pickup_guardians WHERE id = $1",
                    guardian_id
                )
                if not current:
                    return None

                if active and current["status"] != ACTIVE:
                    await conn.execute(
                        "SELECT id FROM students WHERE id = $1 FOR UPDATE",
                        current["student_id"]
                    )
                    count = await conn.fetchval(
                        "SELECT COUNT(*) FROM pickup_guardians WHERE student_id = $1 AND status = $2",
                        current["student_id"], ACTIVE
                    )
                    if count >= max_active:
                        raise LimitExceededError()

                row = await conn.fetchrow(
                    f"""
                    UPDATE pickup_guardians
                    SET status = $2, updated_at = NOW()
                    WHERE id = $1
                    RETURNING {GUARDIAN_COLUMNS}
                    """,
                    guardian_id, ACTIVE if active else INACTIVE
                )
        return _guardian(row)

    async def update_profile(
        self,
        guardian_id: int,
        fields: Dict[str, Optional[str]],
        mark_complete: bool
    ) -> Optional[GuardianRecord]:
        assignments = ["updated_at = NOW()"]
        values = [guardian_id]
        for name in PROFILE_FIELDS:
            if name in fields:
                values.append(fields[name])
                assignments.append(f"{name} = ${len(values)}")
        if mark_complete:
            assignments.append("profile_complete = true")

        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                UPDATE pickup_guardians
                SET {', '.join(assignments)}
                WHERE id = $1
                RETURNING {GUARDIAN_COLUMNS}
                """,
                *values
            )
        return _guardian(row) if row else None

    async def create_session(
        self,
        auth_code_hash: str,
        guardian_id: int,
        student_id: int,
        first_time_login: bool
    ) -> SessionRecord:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                """
                INSERT INTO guardian_sessions (auth_code_hash, guardian_id, student_id, first_time_login)
                VALUES ($1, $2, $3, $4)
                RETURNING id, auth_code_hash, guardian_id, student_id, first_time_login,
                          created_at, revoked_at
                """,
                auth_code_hash, guardian_id, student_id, first_time_login
            )
        return _session(row)

    async def get_session(self, auth_code_hash: str) -> Optional[SessionRecord]:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                """
                SELECT id, auth_code_hash, guardian_id, student_id, first_time_login,
                       created_at, revoked_at
                FROM guardian_sessions
                WHERE auth_code_hash = $1
                """,
                auth_code_hash
            )
        return _session(row) if row else None

    async def revoke_session(self, auth_code_hash: str) -> bool:
        async with self.pool.acquire() as conn:
            result = await conn.execute(
                """
                UPDATE guardian_sessions SET revoked_at = NOW()
                WHERE auth_code_hash = $1 AND revoked_at IS NULL
                """,
                auth_code_hash
            )
        return result.endswith(" 1")

    async def save_device(
        self,
        session_id: int,
        device_token: Optional[str],
        device_type: str,
        device_name: str
    ) -> DeviceRecord:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                """
                INSERT INTO guardian_devices (session_id, device_token, device_type, device_name)
                VALUES ($1, $2, $3, $4)
                ON CONFLICT (session_id) DO UPDATE
                SET device_token = EXCLUDED.device_token,
                    device_type = EXCLUDED.device_type,
                    device_name = EXCLUDED.device_name,
                    registered_at = NOW()
                RETURNING session_id, device_token, device_type, device_name, registered_at
                """,
                session_id, device_token, device_type, device_name
            )
        return _device(row)

    async def list_devices(self, guardian_id: int) -> List[DeviceRecord]:
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                """
                SELECT d.session_id, d.device_token, d.device_type, d.device_name, d.registered_at
                FROM guardian_devices d
                INNER JOIN guardian_sessions s ON s.id = d.session_id
                WHERE s.guardian_id = $1 AND s.revoked_at IS NULL
                ORDER BY d.session_id
                """,
                guardian_id
            )
        return [_device(row) for row in rows]

    async def list_staff(self, branch_id: Optional[int] = None) -> List[StaffRecord]:
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                """
                SELECT id, name, role, branch_id, email, title, photo
                FROM staff_directory
                WHERE $1::INTEGER IS NULL OR branch_id = $1
                ORDER BY name
                """,
                branch_id
            )
        return [
            StaffRecord(
                id=row["id"],
                name=row["name"],
                role=row["role"],
                branch_id=row["branch_id"],
                email=row["email"],
                title=row["title"],
                photo=row["photo"],
            )
            for row in rows
        ]
