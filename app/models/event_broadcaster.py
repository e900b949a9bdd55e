"""
Event Broadcaster - Quản lý Server-Sent Events (SSE)
Transient notices for check-in screens: marked, already marked, system messages
"""
import json
import queue
import threading
from datetime import datetime
from typing import Any, Dict, List, Optional


class EventBroadcaster:
    """Service quản lý SSE events cho thông báo real-time"""

    def __init__(self, logger=None, queue_size: int = 50):
        self.clients: List[queue.Queue] = []
        self.clients_lock = threading.Lock()
        self.queue_size = queue_size
        self.logger = logger

    def add_client(self) -> queue.Queue:
        """Thêm client mới và trả về queue của client đó"""
        client_queue = queue.Queue(maxsize=self.queue_size)

        with self.clients_lock:
            self.clients.append(client_queue)
            total = len(self.clients)

        if self.logger:
            self.logger.info(f"[SSE] New client connected. Total: {total}")

        return client_queue

    def remove_client(self, client_queue: queue.Queue):
        """Xóa client khi disconnect"""
        with self.clients_lock:
            if client_queue not in self.clients:
                return
            self.clients.remove(client_queue)
            remaining = len(self.clients)

        if self.logger:
            self.logger.info(f"[SSE] Client disconnected. Remaining: {remaining}")

    def broadcast_event(self, event_data: Dict[str, Any]) -> int:
        """
        Broadcast event đến tất cả clients

        Args:
            event_data: Dictionary chứa event data
                - type: Loại event (vd: 'attendance_marked', 'already_marked')
                - data: Dữ liệu của event
                - timestamp: Thời gian (tự động thêm nếu không có)

        Returns:
            Số client đã nhận event
        """
        if 'timestamp' not in event_data:
            event_data['timestamp'] = datetime.now().isoformat(timespec='seconds')

        message = format_sse_message(event_data)

        delivered = 0
        full_clients = []
        with self.clients_lock:
            for client_queue in self.clients:
                try:
                    client_queue.put_nowait(message)
                    delivered += 1
                except queue.Full:
                    full_clients.append(client_queue)

        for client_queue in full_clients:
            if self.logger:
                self.logger.warning("[SSE] Client queue full, dropping client")
            self.remove_client(client_queue)

        if self.logger and delivered:
            self.logger.debug(f"[SSE] Broadcast {event_data.get('type', 'message')} to {delivered} clients")

        return delivered

    def broadcast_attendance_update(
        self,
        emp_id: str,
        name: Optional[str],
        status: str,
        record: Optional[Dict[str, Any]] = None,
        station: Optional[str] = None,
        distance: Optional[float] = None,
    ) -> int:
        """Broadcast kết quả chấm công: 'created' hoặc 'already_marked'"""
        event_type = 'attendance_marked' if status == 'created' else 'already_marked'
        return self.broadcast_event({
            'type': event_type,
            'data': {
                'emp_id': emp_id,
                'name': name or emp_id,
                'status': status,
                'record': record,
                'station': station,
                'distance': round(distance, 4) if distance is not None else None,
            }
        })

    def broadcast_system_message(self, message: str, level: str = 'info') -> int:
        return self.broadcast_event({
            'type': 'system_message',
            'data': {
                'message': message,
                'level': level,  # 'info', 'warning', 'error', 'success'
            }
        })

    def get_client_count(self) -> int:
        with self.clients_lock:
            return len(self.clients)

    def cleanup(self):
        """Cleanup tất cả clients"""
        with self.clients_lock:
            self.clients.clear()

        if self.logger:
            self.logger.info("[SSE] All clients removed")


def format_sse_message(event_data: Dict[str, Any]) -> str:
    """Format data thành SSE message: event: type / data: json / dòng trống"""
    event_type = event_data.get('type', 'message')
    return "\n".join([
        f"event: {event_type}",
        f"data: {json.dumps(event_data, default=str)}",
        "",
        "",
    ])
