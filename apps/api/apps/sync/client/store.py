"""
Device-side mirror of the clinic dataset.

A sqlite3 database holding the seven synced tables as the device sees them,
plus the bookkeeping the sync cycle needs:

- `synced` column on every row: 0 while a local edit has not been pushed
- `sync_log`: append-only journal of local edits
- `cloud_sync_meta`: single row with device_id, last_pushed_at, last_pulled_at

Timestamps are ISO-8601 UTC strings with microseconds and a trailing Z,
the same format the server renders.

This module has no Django dependency so it can ship with a device build.
"""
import logging
import sqlite3
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = '%Y-%m-%dT%H:%M:%S.%fZ'

# (column, sqlite type, default for locally created rows)
_SYNC_COLUMNS = (
    ('is_deleted', 'INTEGER', 0),
    ('created_at', 'TEXT', None),
    ('updated_at', 'TEXT', None),
)

MIRROR_TABLES = {
    'patients': (
        ('id', 'TEXT', None),
        ('name', 'TEXT', None),
        ('age', 'INTEGER', 0),
        ('gender', 'TEXT', 'male'),
        ('weight', 'REAL', None),
        ('phone', 'TEXT', ''),
        ('address', 'TEXT', ''),
        ('blood_group', 'TEXT', ''),
        ('allergies', 'TEXT', ''),
    ) + _SYNC_COLUMNS,
    'prescriptions': (
        ('id', 'TEXT', None),
        ('patient_id', 'TEXT', ''),
        ('patient_name', 'TEXT', ''),
        ('patient_age', 'INTEGER', 0),
        ('patient_gender', 'TEXT', 'male'),
        ('patient_phone', 'TEXT', ''),
        ('doctor_id', 'TEXT', ''),
        ('diagnosis', 'TEXT', ''),
        ('advice', 'TEXT', ''),
        ('follow_up_date', 'TEXT', None),
        ('pdf_hash', 'TEXT', None),
        ('signature', 'TEXT', None),
        ('status', 'TEXT', 'draft'),
        ('wallet_deducted', 'INTEGER', 0),
    ) + _SYNC_COLUMNS,
    'prescription_medicines': (
        ('id', 'TEXT', None),
        ('prescription_id', 'TEXT', ''),
        ('medicine_name', 'TEXT', None),
        ('type', 'TEXT', ''),
        ('dosage', 'TEXT', ''),
        ('frequency', 'TEXT', ''),
        ('duration', 'TEXT', ''),
        ('timing', 'TEXT', ''),
        ('notes', 'TEXT', ''),
    ) + _SYNC_COLUMNS,
    'prescription_lab_tests': (
        ('id', 'TEXT', None),
        ('prescription_id', 'TEXT', ''),
        ('test_name', 'TEXT', None),
        ('category', 'TEXT', ''),
        ('notes', 'TEXT', ''),
    ) + _SYNC_COLUMNS,
    'queue': (
        ('id', 'TEXT', None),
        ('patient_id', 'TEXT', ''),
        ('status', 'TEXT', 'waiting'),
        ('added_by', 'TEXT', ''),
        ('notes', 'TEXT', ''),
        ('token_number', 'INTEGER', 0),
        ('added_at', 'TEXT', None),
        ('started_at', 'TEXT', None),
        ('completed_at', 'TEXT', None),
    ) + _SYNC_COLUMNS,
    'custom_medicines': (
        ('id', 'TEXT', None),
        ('name', 'TEXT', None),
        ('type', 'TEXT', 'Tablet'),
        ('strength', 'TEXT', ''),
        ('manufacturer', 'TEXT', ''),
        ('usage_count', 'INTEGER', 0),
    ) + _SYNC_COLUMNS,
    'custom_lab_tests': (
        ('id', 'TEXT', None),
        ('name', 'TEXT', None),
        ('category', 'TEXT', 'Other'),
        ('usage_count', 'INTEGER', 0),
    ) + _SYNC_COLUMNS,
}

# Parents before children, same as the server applies them
PUSH_ORDER = (
    'patients',
    'prescriptions',
    'prescription_medicines',
    'prescription_lab_tests',
    'queue',
    'custom_medicines',
    'custom_lab_tests',
)

BOOLEAN_COLUMNS = {'is_deleted'}


class MirrorError(Exception):
    """Invalid local operation (unknown collection, missing id)."""


def utc_now() -> str:
    return datetime.now(timezone.utc).strftime(TIMESTAMP_FORMAT)


def parse_timestamp(value: str) -> datetime:
    """Parse a wire timestamp; naive values are UTC."""
    parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def columns(collection: str) -> List[str]:
    return [name for name, _, _ in _table(collection)]


def _table(collection: str):
    try:
        return MIRROR_TABLES[collection]
    except KeyError:
        raise MirrorError(f'Unknown collection: {collection}') from None


class LocalMirror:
    """
    sqlite3-backed local copy of one clinic's data.

    Usage:
        mirror = LocalMirror('clinic.db')
        mirror.record_local_change('patients', {'id': 'p1', 'name': 'Asha', 'age': 31})
        payload = mirror.unsynced_payload()
    """

    def __init__(self, path: str = ':memory:', device_id: Optional[str] = None):
        self.path = path
        self.conn = sqlite3.connect(path)
        self.conn.row_factory = sqlite3.Row
        self._create_schema(device_id or f'device-{uuid.uuid4()}')

    def close(self):
        self.conn.close()

    # --- Schema ---

    def _create_schema(self, device_id: str):
        with self.conn:
            for collection, table_columns in MIRROR_TABLES.items():
                column_sql = ', '.join(
                    f'{name} {sql_type} PRIMARY KEY' if name == 'id' else f'{name} {sql_type}'
                    for name, sql_type, _ in table_columns
                )
                self.conn.execute(
                    f'CREATE TABLE IF NOT EXISTS {collection} ({column_sql}, synced INTEGER NOT NULL DEFAULT 0)'
                )
                self.conn.execute(
                    f'CREATE INDEX IF NOT EXISTS idx_{collection}_synced ON {collection}(synced)'
                )

            self.conn.execute(
                '''CREATE TABLE IF NOT EXISTS sync_log (
                       log_id INTEGER PRIMARY KEY AUTOINCREMENT,
                       collection TEXT NOT NULL,
                       record_id TEXT NOT NULL,
                       operation TEXT NOT NULL,
                       changed_at TEXT NOT NULL,
                       synced INTEGER NOT NULL DEFAULT 0
                   )'''
            )
            self.conn.execute(
                '''CREATE TABLE IF NOT EXISTS cloud_sync_meta (
                       id INTEGER PRIMARY KEY CHECK (id = 1),
                       device_id TEXT NOT NULL,
                       last_pushed_at TEXT,
                       last_pulled_at TEXT
                   )'''
            )
            self.conn.execute(
                'INSERT OR IGNORE INTO cloud_sync_meta (id, device_id) VALUES (1, ?)',
                (device_id,)
            )

    # --- Meta ---

    def _meta(self) -> sqlite3.Row:
        return self.conn.execute('SELECT * FROM cloud_sync_meta WHERE id = 1').fetchone()

    @property
    def device_id(self) -> str:
        return self._meta()['device_id']

    @property
    def last_pushed_at(self) -> Optional[str]:
        return self._meta()['last_pushed_at']

    @property
    def last_pulled_at(self) -> Optional[str]:
        return self._meta()['last_pulled_at']

    # --- Reads ---

    def get(self, collection: str, record_id: str) -> Optional[Dict[str, Any]]:
        _table(collection)
        row = self.conn.execute(f'SELECT * FROM {collection} WHERE id = ?', (record_id,)).fetchone()
        return dict(row) if row else None

    def all(self, collection: str, include_deleted: bool = False) -> List[Dict[str, Any]]:
        _table(collection)
        sql = f'SELECT * FROM {collection}'
        if not include_deleted:
            sql += ' WHERE is_deleted = 0'
        return [dict(row) for row in self.conn.execute(sql + ' ORDER BY updated_at, id')]

    def pending_log(self) -> List[Dict[str, Any]]:
        rows = self.conn.execute('SELECT * FROM sync_log WHERE synced = 0 ORDER BY log_id')
        return [dict(row) for row in rows]

    # --- Local edits ---

    def record_local_change(self, collection: str, row: Dict[str, Any], at: Optional[str] = None) -> Dict[str, Any]:
        """
        Create or update a row locally and queue it for the next push.

        Columns missing from `row` keep their stored value (or the column
        default for a new row). updated_at is always bumped.
        """
        if not row.get('id'):
            raise MirrorError('Local rows need an id')

        now = at or utc_now()
        existing = self.get(collection, row['id'])

        if existing is None:
            values = {name: default for name, _, default in _table(collection)}
            values['created_at'] = now
            operation = 'insert'
        else:
            values = {name: existing[name] for name in columns(collection)}
            operation = 'update'

        values.update({k: v for k, v in row.items() if k in values})
        values['updated_at'] = now
        values['is_deleted'] = int(bool(values['is_deleted']))
        if values['is_deleted']:
            operation = 'delete'

        with self.conn:
            self._write_row(collection, values, synced=0)
            self.conn.execute(
                'INSERT INTO sync_log (collection, record_id, operation, changed_at) VALUES (?, ?, ?, ?)',
                (collection, values['id'], operation, now)
            )
        return values

    def soft_delete(self, collection: str, record_id: str, at: Optional[str] = None) -> Dict[str, Any]:
        return self.record_local_change(collection, {'id': record_id, 'is_deleted': True}, at=at)

    def _write_row(self, collection: str, values: Dict[str, Any], synced: int):
        names = columns(collection)
        placeholders = ', '.join('?' for _ in names)
        self.conn.execute(
            f'INSERT OR REPLACE INTO {collection} ({", ".join(names)}, synced) VALUES ({placeholders}, ?)',
            [values.get(name) for name in names] + [synced]
        )

    # --- Push side ---

    def unsynced_payload(self) -> Dict[str, List[Dict[str, Any]]]:
        """Push body with every unsynced row, collections in push order."""
        payload = {}
        for collection in PUSH_ORDER:
            rows = self.conn.execute(
                f'SELECT {", ".join(columns(collection))} FROM {collection} WHERE synced = 0 ORDER BY updated_at, id'
            ).fetchall()
            if rows:
                payload[collection] = [self._to_wire(row) for row in rows]
        return payload

    @staticmethod
    def _to_wire(row: sqlite3.Row) -> Dict[str, Any]:
        wire = dict(row)
        for name in BOOLEAN_COLUMNS:
            wire[name] = bool(wire[name])
        return wire

    def mark_pushed(self, payload: Dict[str, List[Dict[str, Any]]], pushed_at: Optional[str] = None):
        """
        Mark the rows of an accepted push as synced.

        A row edited again after the payload was built keeps synced = 0 so
        the newer edit goes out on the next push.
        """
        pushed_at = pushed_at or utc_now()
        with self.conn:
            for collection, rows in payload.items():
                _table(collection)
                for row in rows:
                    self.conn.execute(
                        f'UPDATE {collection} SET synced = 1 WHERE id = ? AND updated_at = ?',
                        (row['id'], row['updated_at'])
                    )
                    self.conn.execute(
                        'UPDATE sync_log SET synced = 1 WHERE collection = ? AND record_id = ? AND changed_at <= ?',
                        (collection, row['id'], row['updated_at'])
                    )
            self.conn.execute('UPDATE cloud_sync_meta SET last_pushed_at = ? WHERE id = 1', (pushed_at,))

    # --- Pull side ---

    def merge_pulled(self, result: Dict[str, Any]) -> Dict[str, int]:
        """
        Apply a pull (or restore) response.

        An incoming row replaces the local one only when its updated_at is
        strictly newer, so unpushed local edits that are newer survive.
        Stores the response's server_time as the next pull cursor. Returns
        the number of rows applied per collection.
        """
        server_time = result.get('server_time')
        if not server_time:
            raise MirrorError('Pull response without server_time')

        applied = {}
        with self.conn:
            for collection in PUSH_ORDER:
                count = 0
                for row in result.get(collection) or []:
                    if self._merge_row(collection, row):
                        count += 1
                applied[collection] = count
            self.conn.execute('UPDATE cloud_sync_meta SET last_pulled_at = ? WHERE id = 1', (server_time,))

        logger.info(
            'Merged pulled rows',
            extra={'event': 'mirror_pull_merged', 'rows': sum(applied.values()), 'server_time': server_time}
        )
        return applied

    def _merge_row(self, collection: str, row: Dict[str, Any]) -> bool:
        existing = self.conn.execute(
            f'SELECT updated_at FROM {collection} WHERE id = ?', (row['id'],)
        ).fetchone()

        if existing is not None and existing['updated_at']:
            if parse_timestamp(row['updated_at']) <= parse_timestamp(existing['updated_at']):
                return False

        values = {name: row.get(name) for name in columns(collection)}
        values['is_deleted'] = int(bool(values['is_deleted']))
        self._write_row(collection, values, synced=1)
        return True
