"""AWS Route 53 DNS provider.

Uses ``boto3``; credentials come from the usual AWS chain (environment,
shared config, instance role) unless ``provider_config`` names a
``profile``.  Recognised ``provider_config`` keys: ``profile``,
``region``, ``comment``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError, NoCredentialsError

from acmer53.core.errors import DnsProviderError
from acmer53.dns.base import DEFAULT_TTL, DnsProvider, encode_txt_value

if TYPE_CHECKING:
    from botocore.client import BaseClient

log = logging.getLogger(__name__)

DEFAULT_COMMENT = "LetsEncrypt validation record"
INSYNC = "INSYNC"

INSTRUCTIONS = (
    "To use Route 53, configure AWS credentials as described at "
    "https://boto3.amazonaws.com/v1/documentation/api/latest/guide/credentials.html"
)


class Route53Provider(DnsProvider):
    """Publish DNS-01 validation records in Route 53 hosted zones."""

    name = "route53"

    def __init__(
        self,
        provider_config: dict[str, Any] | None = None,
        record_ttl: int = DEFAULT_TTL,
        *,
        client: BaseClient | None = None,
    ) -> None:
        super().__init__(provider_config, record_ttl)
        self._client = client

    @property
    def client(self) -> BaseClient:
        if self._client is None:
            session = boto3.Session(
                profile_name=self.provider_config.get("profile"),
                region_name=self.provider_config.get("region"),
            )
            self._client = session.client("route53")
        return self._client

    def _call(self, operation: str, **kwargs: Any) -> dict[str, Any]:  # noqa: ANN401
        try:
            return getattr(self.client, operation)(**kwargs)
        except NoCredentialsError as exc:
            msg = f"No AWS credentials found. {INSTRUCTIONS}"
            raise DnsProviderError(msg) from exc
        except ClientError as exc:
            error = exc.response.get("Error", {})
            msg = f"Route 53 {operation} failed: {error.get('Code')}: {error.get('Message')}"
            raise DnsProviderError(msg) from exc
        except BotoCoreError as exc:
            msg = f"Route 53 {operation} failed: {exc}"
            raise DnsProviderError(msg) from exc

    def find_hosted_zone_id(self, domain: str) -> str | None:
        """Return the public zone named *domain*, else its closest parent zone."""
        target = domain.removeprefix("*.").rstrip(".").lower()
        target_labels = target.split(".")
        candidates: list[tuple[int, str]] = []

        try:
            pages = self.client.get_paginator("list_hosted_zones").paginate()
            for page in pages:
                for zone in page["HostedZones"]:
                    if zone.get("Config", {}).get("PrivateZone"):
                        continue
                    zone_labels = zone["Name"].rstrip(".").lower().split(".")
                    if zone_labels == target_labels[-len(zone_labels) :]:
                        candidates.append((len(zone_labels), zone["Id"]))
        except NoCredentialsError as exc:
            msg = f"No AWS credentials found. {INSTRUCTIONS}"
            raise DnsProviderError(msg) from exc
        except (ClientError, BotoCoreError) as exc:
            msg = f"Route 53 list_hosted_zones failed: {exc}"
            raise DnsProviderError(msg) from exc

        if not candidates:
            log.debug("No hosted zone serves %s", target)
            return None

        # most specific zone wins
        candidates.sort(reverse=True)
        zone_id = candidates[0][1]
        log.debug("Hosted zone for %s: %s", target, zone_id)
        return zone_id

    def _change_txt_record(self, action: str, zone_id: str, domain: str, value: str) -> str:
        change_batch: dict[str, Any] = {
            "Changes": [
                {
                    "Action": action,
                    "ResourceRecordSet": {
                        "Name": self.record_name(domain),
                        "Type": "TXT",
                        "TTL": self.record_ttl,
                        "ResourceRecords": [{"Value": encode_txt_value(value)}],
                    },
                },
            ],
        }
        if action == "CREATE":
            change_batch["Comment"] = self.provider_config.get("comment", DEFAULT_COMMENT)

        response = self._call(
            "change_resource_record_sets",
            HostedZoneId=zone_id,
            ChangeBatch=change_batch,
        )
        change_id = response["ChangeInfo"]["Id"]
        log.debug("%s TXT %s -> change %s", action, self.record_name(domain), change_id)
        return change_id

    def create_challenge_txt_record(self, zone_id: str, domain: str, value: str) -> str:
        return self._change_txt_record("CREATE", zone_id, domain, value)

    def delete_challenge_txt_record(self, zone_id: str, domain: str, value: str) -> str:
        return self._change_txt_record("DELETE", zone_id, domain, value)

    def is_change_in_sync(self, change_id: str) -> bool:
        response = self._call("get_change", Id=change_id)
        status = response["ChangeInfo"]["Status"]
        log.debug("Change %s status: %s", change_id, status)
        return status == INSYNC
