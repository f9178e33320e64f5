#!/usr/bin/env python3
"""
Knock workflow notifier for crawler alerts.

Hands structured alert events to Knock workflows. Delivery channels and
per-user preferences are configured in Knock, not here.
"""

import logging
from typing import Dict, Any, Optional
from datetime import datetime, timezone

import requests

from core.models.health import Alert, AlertKind, Severity
from core.models.run import RunResult

logger = logging.getLogger(__name__)

KNOCK_API_URL = "https://api.knock.app/v1"

# Alert kind -> Knock workflow key
WORKFLOWS = {
    AlertKind.SYSTEM_DOWN: "system-down",
    AlertKind.HIGH_ERROR_RATE: "high-error-rate",
    AlertKind.LOW_SUCCESS_RATE: "low-success-rate",
    AlertKind.CRAWLER_STUCK: "crawler-stuck",
    AlertKind.PLATFORM_DOWN: "platform-down",
    AlertKind.USAGE_CRITICAL: "api-limit-critical",
    AlertKind.USAGE_WARNING: "api-limit-warning",
    AlertKind.CRAWLER_SUCCESS: "crawler-success",
    AlertKind.CRAWLER_FAILED: "crawler-failed",
}


class KnockNotifier:
    """Triggers Knock workflows over the REST API."""

    def __init__(self, api_key: Optional[str], recipient: Optional[str],
                 api_url: str = KNOCK_API_URL, timeout: int = 10):
        """
        Initialize Knock notifier.

        Args:
            api_key: Knock secret API key
            recipient: Knock user id that receives crawler alerts
            api_url: Knock API base URL
            timeout: Request timeout in seconds
        """
        self.api_key = api_key
        self.recipient = recipient
        self.api_url = api_url.rstrip('/')
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self.api_key and self.recipient)

    def send_alert(self, alert: Alert) -> bool:
        """
        Deliver one alert to its workflow.

        Returns:
            True if Knock accepted the trigger
        """
        workflow = WORKFLOWS.get(alert.kind)
        if workflow is None:
            logger.warning(f"No Knock workflow for alert kind {alert.kind.value}")
            return False

        data = alert.to_dict()
        data.update(alert.context)
        return self.trigger(workflow, data)

    def send_run_result(self, result: RunResult) -> bool:
        """Send the one-off success or failure notification for a source."""
        now = datetime.now(timezone.utc)
        if result.is_success:
            alert = Alert(
                kind=AlertKind.CRAWLER_SUCCESS,
                severity=Severity.INFO,
                title='Crawl succeeded',
                message=f"Collected {len(result.entries)} songs from {result.source_id} in {result.duration_ms}ms.",
                timestamp=now,
                context={'platform': result.source_id}
            )
        else:
            alert = Alert(
                kind=AlertKind.CRAWLER_FAILED,
                severity=Severity.ERROR,
                title='Crawl failed',
                message=f"{result.source_id} crawl failed: {result.error_message}",
                timestamp=now,
                context={'platform': result.source_id, 'error_kind': result.error_kind}
            )
        return self.send_alert(alert)

    def trigger(self, workflow: str, data: Dict[str, Any]) -> bool:
        """Trigger a workflow for the configured recipient."""
        if not self.configured:
            logger.warning("Knock credentials not configured")
            return False

        payload = {
            "recipients": [self.recipient],
            "data": data
        }

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json"
        }

        try:
            response = requests.post(
                f"{self.api_url}/workflows/{workflow}/trigger",
                json=payload,
                headers=headers,
                timeout=self.timeout
            )

            if 200 <= response.status_code < 300:
                logger.info(f"Knock workflow '{workflow}' triggered")
                return True
            else:
                logger.error(f"Knock API error: {response.status_code} - {response.text}")
                return False

        except requests.RequestException as e:
            logger.error(f"Failed to trigger Knock workflow '{workflow}': {e}")
            return False
