"""
Database module for the attendance tracker
SQLite store for employees, reference descriptors and attendance rows
"""

import logging
import sqlite3
import time
from contextlib import contextmanager
from datetime import date, datetime

from core.errors import (
    DuplicateAttendance,
    DuplicateEmployee,
    EmployeeNotFound,
    StoreUnavailable,
)
from logging_config import database_logger

logger = logging.getLogger(__name__)

EMPLOYEE_COLUMNS = '''
    e.id, e.emp_id, e.name, e.department, e.join_date, e.photo, e.is_active,
    e.created_at, e.updated_at,
    (SELECT COUNT(*) FROM employee_descriptors d WHERE d.emp_id = e.emp_id) AS descriptor_count
'''

ATTENDANCE_COLUMNS = '''
    a.id, a.emp_id, date(a.attendance_date) AS attendance_date,
    time(a.check_in_time) AS check_in_time, a.status
'''


def _iso(value):
    if isinstance(value, (date, datetime)):
        return value.isoformat()[:10]
    return value


class DatabaseManager:
    def __init__(self, db_path="attendance_system.db", timeout=5.0):
        self.db_path = str(db_path)
        self.timeout = float(timeout)
        self.init_database()

    @contextmanager
    def get_connection(self):
        """Mở kết nối, commit khi thành công và luôn đóng kết nối."""
        started = time.perf_counter()
        try:
            conn = sqlite3.connect(self.db_path, timeout=self.timeout)
        except sqlite3.OperationalError as exc:
            database_logger.log_error('connect', str(exc))
            raise StoreUnavailable(f"Cannot open database {self.db_path}: {exc}") from exc

        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except sqlite3.OperationalError as exc:
            conn.rollback()
            database_logger.log_error('query', str(exc))
            raise StoreUnavailable(f"Database unavailable: {exc}") from exc
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()
            database_logger.log_query('connection', self.db_path, time.perf_counter() - started)

    def init_database(self):
        """Khởi tạo database và các bảng"""
        with self.get_connection() as conn:
            cursor = conn.cursor()

            cursor.execute('''
                CREATE TABLE IF NOT EXISTS employees (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    emp_id VARCHAR(20) UNIQUE NOT NULL,
                    name VARCHAR(100) NOT NULL,
                    department VARCHAR(100),
                    join_date TEXT,
                    photo TEXT,
                    is_active BOOLEAN DEFAULT 1,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            ''')

            # One row per reference photo with a detectable face
            cursor.execute('''
                CREATE TABLE IF NOT EXISTS employee_descriptors (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    emp_id VARCHAR(20) NOT NULL,
                    embedding BLOB NOT NULL,
                    source VARCHAR(20) DEFAULT 'photo',
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    FOREIGN KEY (emp_id) REFERENCES employees(emp_id) ON DELETE CASCADE
                )
            ''')

            # UNIQUE (emp_id, attendance_date) is what makes recording idempotent
            cursor.execute('''
                CREATE TABLE IF NOT EXISTS attendance (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    emp_id VARCHAR(20) NOT NULL,
                    attendance_date DATE NOT NULL,
                    check_in_time TEXT,
                    status VARCHAR(20) NOT NULL DEFAULT 'Present',
                    photo TEXT,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    UNIQUE (emp_id, attendance_date)
                )
            ''')

            cursor.execute('''
                CREATE INDEX IF NOT EXISTS idx_attendance_date
                ON attendance (attendance_date, check_in_time)
            ''')
            cursor.execute('''
                CREATE INDEX IF NOT EXISTS idx_descriptors_emp
                ON employee_descriptors (emp_id)
            ''')

        logger.info("Database ready at %s", self.db_path)

    def ping(self):
        """Kiểm tra database còn truy cập được không"""
        try:
            with self.get_connection() as conn:
                conn.execute('SELECT 1')
            return True
        except StoreUnavailable:
            return False

    # === QUẢN LÝ NHÂN VIÊN ===
    def add_employee(self, emp_id, name, department=None, join_date=None, photo=None, is_active=True):
        """Thêm nhân viên mới"""
        with self.get_connection() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute('''
                    INSERT INTO employees (emp_id, name, department, join_date, photo, is_active)
                    VALUES (?, ?, ?, ?, ?, ?)
                ''', (emp_id, name, department, _iso(join_date), photo, 1 if is_active else 0))
            except sqlite3.IntegrityError as e:
                logger.warning(f"Employee ID {emp_id} already exists: {e}")
                raise DuplicateEmployee(emp_id) from e
            logger.info(f"Added employee: {name} ({emp_id})")
            return cursor.lastrowid

    def get_employee(self, emp_id):
        """Lấy thông tin nhân viên"""
        with self.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(f'SELECT {EMPLOYEE_COLUMNS} FROM employees e WHERE e.emp_id = ?', (emp_id,))
            row = cursor.fetchone()
            return dict(row) if row else None

    def get_all_employees(self, active_only=False):
        """Lấy danh sách tất cả nhân viên"""
        with self.get_connection() as conn:
            cursor = conn.cursor()
            if active_only:
                cursor.execute(f'''
                    SELECT {EMPLOYEE_COLUMNS} FROM employees e
                    WHERE e.is_active = 1 ORDER BY e.name, e.emp_id
                ''')
            else:
                cursor.execute(f'SELECT {EMPLOYEE_COLUMNS} FROM employees e ORDER BY e.name, e.emp_id')
            return [dict(r) for r in cursor.fetchall()]

    def update_employee(self, emp_id, **kwargs):
        """Cập nhật thông tin nhân viên"""
        allowed_fields = ['name', 'department', 'join_date', 'photo', 'is_active']
        updates = {}
        for field in allowed_fields:
            if field in kwargs and kwargs[field] is not None:
                value = kwargs[field]
                if field == 'is_active':
                    value = 1 if bool(value) else 0
                elif field == 'join_date':
                    value = _iso(value)
                updates[field] = value

        if not updates:
            return False

        updates['updated_at'] = datetime.now().isoformat()
        set_clause = ', '.join([f"{k} = ?" for k in updates.keys()])
        with self.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f'''UPDATE employees SET {set_clause} WHERE emp_id = ?''',
                list(updates.values()) + [emp_id]
            )
            return cursor.rowcount > 0

    def delete_employee(self, emp_id):
        """Xóa nhân viên và descriptor; lịch sử điểm danh được giữ lại"""
        with self.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute('DELETE FROM employee_descriptors WHERE emp_id = ?', (emp_id,))
            cursor.execute('DELETE FROM employees WHERE emp_id = ?', (emp_id,))
            deleted = cursor.rowcount > 0
        if deleted:
            logger.info(f"Deleted employee {emp_id}")
        return deleted

    # === DESCRIPTOR KHUÔN MẶT ===
    def add_descriptor(self, emp_id, embedding, source='photo'):
        """Lưu một embedding (bytes) cho nhân viên"""
        with self.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute('''
                INSERT INTO employee_descriptors (emp_id, embedding, source)
                VALUES (?, ?, ?)
            ''', (emp_id, sqlite3.Binary(embedding), source))
            return cursor.lastrowid

    def replace_descriptors(self, emp_id, embeddings, source='photo'):
        """Thay toàn bộ embedding của nhân viên trong một transaction"""
        with self.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute('DELETE FROM employee_descriptors WHERE emp_id = ?', (emp_id,))
            cursor.executemany('''
                INSERT INTO employee_descriptors (emp_id, embedding, source)
                VALUES (?, ?, ?)
            ''', [(emp_id, sqlite3.Binary(e), source) for e in embeddings])
            return len(embeddings)

    def get_all_descriptors(self):
        """Lấy embeddings của các nhân viên đang hoạt động (cho gallery)"""
        with self.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute('''
                SELECT d.emp_id, d.embedding
                FROM employee_descriptors d
                JOIN employees e ON d.emp_id = e.emp_id
                WHERE e.is_active = 1
                ORDER BY d.emp_id, d.id
            ''')
            return [(row['emp_id'], bytes(row['embedding'])) for row in cursor.fetchall()]

    # === QUẢN LÝ ĐIỂM DANH ===
    def insert_attendance(self, emp_id, attendance_date, status='Present', photo=None):
        """Ghi điểm danh; giờ check-in do database đóng dấu.

        Raises DuplicateAttendance when the (emp_id, date) pair already exists.
        """
        day = _iso(attendance_date)
        with self.get_connection() as conn:
            cursor = conn.cursor()
            # Giữ write lock ngay từ đầu; writer thứ hai chờ theo busy timeout
            cursor.execute('BEGIN IMMEDIATE')

            cursor.execute('SELECT 1 FROM employees WHERE emp_id = ?', (emp_id,))
            if cursor.fetchone() is None:
                raise EmployeeNotFound(emp_id)

            try:
                cursor.execute('''
                    INSERT INTO attendance (emp_id, attendance_date, check_in_time, status, photo)
                    VALUES (?, ?, time('now', 'localtime'), ?, ?)
                ''', (emp_id, day, status, photo))
            except sqlite3.IntegrityError as e:
                raise DuplicateAttendance(f"{emp_id} already marked on {day}") from e

            cursor.execute(f'''
                SELECT {ATTENDANCE_COLUMNS}, a.photo
                FROM attendance a WHERE a.id = ?
            ''', (cursor.lastrowid,))
            row = dict(cursor.fetchone())

        logger.info(f"Marked attendance for {emp_id} on {day}")
        return row

    def get_attendance(self, emp_id=None, start_date=None, end_date=None, include_photo=True, limit=None):
        """Lấy điểm danh, mới nhất trước, lọc theo nhân viên và khoảng ngày"""
        clauses = []
        params = []
        if emp_id:
            clauses.append('a.emp_id = ?')
            params.append(emp_id)
        if start_date:
            clauses.append('a.attendance_date >= ?')
            params.append(_iso(start_date))
        if end_date:
            clauses.append('a.attendance_date <= ?')
            params.append(_iso(end_date))

        where = f"WHERE {' AND '.join(clauses)}" if clauses else ''
        photo_column = ', a.photo' if include_photo else ''
        limit_clause = ''
        if limit:
            limit_clause = 'LIMIT ?'
            params.append(int(limit))
        with self.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(f'''
                SELECT {ATTENDANCE_COLUMNS}{photo_column}
                FROM attendance a
                {where}
                ORDER BY a.attendance_date DESC, a.check_in_time DESC, a.id DESC
                {limit_clause}
            ''', params)
            return [dict(r) for r in cursor.fetchall()]
