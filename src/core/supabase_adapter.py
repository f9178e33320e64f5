#!/usr/bin/env python3
"""
Supabase REST API store.

Chart crawler storage on Supabase tables:
    crawler_logs    append-only execution log, one row per source per run
    admin_settings  keyed settings; the snapshot lives under one fixed key
    cron_jobs       status row maintained by the external scheduler

Scheduler lookups and the remote trigger go through database RPCs.
"""

import logging
from datetime import datetime, timezone
from typing import List, Dict, Any, Optional

from supabase import create_client, Client

from core.exceptions import ConfigurationError, StoreOperationError
from core.models.health import ScheduleStatus
from core.models.run import LogRecord
from core.models.snapshot import ChartSnapshot, SNAPSHOT_KEY
from core.store import ChartStore

logger = logging.getLogger(__name__)

LOGS_TABLE = 'crawler_logs'
SETTINGS_TABLE = 'admin_settings'
SCHEDULE_TABLE = 'cron_jobs'

NEXT_RUN_RPC = 'get_next_crawler_run_kst'
TRIGGER_RPC = 'trigger_chart_crawler_now'


class SupabaseChartStore(ChartStore):
    """
    Chart store using the Supabase REST API.

    The client is injected so tests and the container control its lifecycle.
    """

    def __init__(self, client: Client):
        """Initialize with a Supabase client."""
        self.client = client
        logger.debug("Supabase chart store initialized")

    @classmethod
    def from_credentials(cls, url: Optional[str], key: Optional[str]) -> 'SupabaseChartStore':
        """Create store from project URL and API key."""
        if not url:
            raise ConfigurationError('SUPABASE_URL', 'is required for the Supabase store')
        if not key:
            raise ConfigurationError('SUPABASE_SERVICE_KEY', 'neither service nor anon key is set')
        return cls(create_client(url, key))

    # Log operations

    def append_log(self, record: LogRecord) -> None:
        try:
            (self.client.table(LOGS_TABLE)
             .insert(record.to_row())
             .execute())
            logger.debug(f"Appended {record.status} log for {record.source_id}")
        except Exception as e:
            logger.error(f"Failed to append log for {record.source_id}: {e}")
            raise StoreOperationError('insert', LOGS_TABLE, e)

    def get_recent_logs(self, limit: int = 20) -> List[LogRecord]:
        try:
            result = (self.client.table(LOGS_TABLE)
                      .select('*')
                      .order('created_at', desc=True)
                      .limit(limit)
                      .execute())
        except Exception as e:
            logger.error(f"Failed to get recent logs: {e}")
            raise StoreOperationError('select', LOGS_TABLE, e)

        return [LogRecord.from_row(row) for row in (result.data or [])]

    # Snapshot operations

    def upsert_snapshot(self, snapshot: ChartSnapshot, key: str = SNAPSHOT_KEY) -> None:
        row = {
            'key': key,
            'value': snapshot.to_dict(),
            'description': 'Latest combined chart data from all platforms',
            'category': 'chart_data',
            'updated_at': datetime.now(timezone.utc).isoformat(),
            'is_active': True
        }

        try:
            (self.client.table(SETTINGS_TABLE)
             .upsert(row, on_conflict='key')
             .execute())
            logger.debug(f"Upserted snapshot under '{key}' ({snapshot.entry_count()} entries)")
        except Exception as e:
            logger.error(f"Failed to upsert snapshot '{key}': {e}")
            raise StoreOperationError('upsert', SETTINGS_TABLE, e)

    def get_snapshot(self, key: str = SNAPSHOT_KEY) -> Optional[Dict[str, Any]]:
        try:
            result = (self.client.table(SETTINGS_TABLE)
                      .select('value')
                      .eq('key', key)
                      .eq('is_active', True)
                      .limit(1)
                      .execute())
        except Exception as e:
            logger.error(f"Failed to read snapshot '{key}': {e}")
            raise StoreOperationError('select', SETTINGS_TABLE, e)

        if not result.data:
            return None
        return result.data[0].get('value')

    # Scheduler operations

    def get_schedule_status(self, job_name: str) -> Optional[ScheduleStatus]:
        try:
            result = (self.client.table(SCHEDULE_TABLE)
                      .select('*')
                      .eq('job_name', job_name)
                      .limit(1)
                      .execute())
        except Exception as e:
            logger.error(f"Failed to get schedule status for {job_name}: {e}")
            raise StoreOperationError('select', SCHEDULE_TABLE, e)

        if not result.data:
            return None
        return ScheduleStatus.from_row(result.data[0])

    def get_next_run(self) -> Optional[str]:
        """Next run in KST as formatted by the database; None when unavailable."""
        try:
            result = self.client.rpc(NEXT_RUN_RPC).execute()
            return result.data or None
        except Exception as e:
            logger.warning(f"Error getting next crawler run: {e}")
            return None

    def trigger_remote_run(self) -> Dict[str, Any]:
        try:
            result = self.client.rpc(TRIGGER_RPC).execute()
        except Exception as e:
            logger.error(f"Error triggering crawler: {e}")
            return {'success': False, 'message': str(e)}

        message = None
        if isinstance(result.data, dict):
            message = result.data.get('message')
        return {'success': True, 'message': message or 'Chart crawler triggered successfully'}

    # Health check

    def health_check(self) -> Dict[str, Any]:
        """Check API connection health."""
        try:
            (self.client.table(LOGS_TABLE)
             .select('id')
             .limit(1)
             .execute())

            return {
                'connected': True,
                'method': 'REST API',
                'timestamp': datetime.now(timezone.utc).isoformat()
            }

        except Exception as e:
            logger.error(f"API health check failed: {e}")
            return {
                'connected': False,
                'method': 'REST API',
                'error': str(e),
                'timestamp': datetime.now(timezone.utc).isoformat()
            }
