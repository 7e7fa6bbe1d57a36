# lg_core/webhooks/management/commands/deliver_webhooks.py
from __future__ import annotations

import time

from django.core.management.base import BaseCommand

from lg_core.webhooks.services import OutboxService


class Command(BaseCommand):
    help = "Deliver due lead webhooks from the outbox (retry with exponential backoff)."

    def add_arguments(self, parser):
        parser.add_argument("--limit", type=int, default=100, help="Max rows per pass.")
        parser.add_argument("--loop", action="store_true", help="Keep polling instead of a single pass.")
        parser.add_argument("--interval", type=float, default=10.0, help="Seconds between passes with --loop.")

    def handle(self, *args, **opts):
        while True:
            s = OutboxService.drain(limit=opts["limit"])
            self.stdout.write(
                f"examined={s.examined} delivered={s.delivered} retried={s.retried} failed={s.failed}"
            )
            if not opts["loop"]:
                return
            time.sleep(opts["interval"])
