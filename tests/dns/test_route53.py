"""Tests for acmer53.dns.route53 with a mocked boto3 client."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError, NoCredentialsError

from acmer53.core.errors import DnsProviderError
from acmer53.dns.base import encode_txt_value
from acmer53.dns.route53 import DEFAULT_COMMENT, Route53Provider


def _zone(zone_id: str, name: str, *, private: bool = False) -> dict:
    return {"Id": zone_id, "Name": name, "Config": {"PrivateZone": private}}


def _client_with_zones(*pages):
    client = MagicMock()
    client.get_paginator.return_value.paginate.return_value = [
        {"HostedZones": list(zones)} for zones in pages
    ]
    return client


def _client_error(code: str, message: str, operation: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": message}}, operation)


class TestEncodeTxtValue:
    def test_quotes(self):
        assert encode_txt_value("abc") == '"abc"'

    def test_escapes(self):
        assert encode_txt_value('a"b\\c') == '"a\\"b\\\\c"'


class TestClient:
    def test_lazy_boto3_session(self):
        provider = Route53Provider({"profile": "certs", "region": "us-east-1"})
        with patch("boto3.Session") as session_cls:
            client = provider.client
            again = provider.client

        session_cls.assert_called_once_with(profile_name="certs", region_name="us-east-1")
        session_cls.return_value.client.assert_called_once_with("route53")
        assert client is again is session_cls.return_value.client.return_value

    def test_injected_client(self):
        client = MagicMock()
        assert Route53Provider(client=client).client is client


class TestFindHostedZone:
    def test_exact_match(self):
        client = _client_with_zones([_zone("/hostedzone/Z1", "example.com.")])
        assert Route53Provider(client=client).find_hosted_zone_id("example.com") == "/hostedzone/Z1"
        client.get_paginator.assert_called_once_with("list_hosted_zones")

    def test_parent_zone_for_subdomain(self):
        client = _client_with_zones([_zone("Z1", "example.com.")])
        assert Route53Provider(client=client).find_hosted_zone_id("www.example.com") == "Z1"

    def test_most_specific_zone_across_pages(self):
        client = _client_with_zones(
            [_zone("Z1", "example.com."), _zone("Z9", "other.org.")],
            [_zone("Z2", "sub.example.com.")],
        )
        provider = Route53Provider(client=client)
        assert provider.find_hosted_zone_id("www.sub.example.com") == "Z2"

    def test_label_boundaries(self):
        client = _client_with_zones([_zone("Z1", "ample.com.")])
        assert Route53Provider(client=client).find_hosted_zone_id("example.com") is None

    def test_private_zones_skipped(self):
        client = _client_with_zones(
            [_zone("ZPRIV", "example.com.", private=True), _zone("ZPUB", "com.")],
        )
        assert Route53Provider(client=client).find_hosted_zone_id("example.com") == "ZPUB"

    def test_wildcard_and_case(self):
        client = _client_with_zones([_zone("Z1", "Example.COM.")])
        assert Route53Provider(client=client).find_hosted_zone_id("*.example.com.") == "Z1"

    def test_no_zone(self):
        client = _client_with_zones([_zone("Z1", "other.org.")], [])
        assert Route53Provider(client=client).find_hosted_zone_id("example.com") is None

    def test_no_credentials(self):
        client = MagicMock()
        client.get_paginator.return_value.paginate.side_effect = NoCredentialsError()
        with pytest.raises(DnsProviderError, match="No AWS credentials"):
            Route53Provider(client=client).find_hosted_zone_id("example.com")

    def test_client_error(self):
        client = MagicMock()
        client.get_paginator.return_value.paginate.side_effect = _client_error(
            "AccessDenied",
            "not allowed",
            "ListHostedZones",
        )
        with pytest.raises(DnsProviderError, match="list_hosted_zones failed"):
            Route53Provider(client=client).find_hosted_zone_id("example.com")


class TestChangeRecords:
    def test_create(self):
        client = MagicMock()
        client.change_resource_record_sets.return_value = {
            "ChangeInfo": {"Id": "/change/C1", "Status": "PENDING"},
        }
        provider = Route53Provider(client=client)

        change_id = provider.create_challenge_txt_record("Z1", "example.com", "digest")

        assert change_id == "/change/C1"
        client.change_resource_record_sets.assert_called_once_with(
            HostedZoneId="Z1",
            ChangeBatch={
                "Comment": DEFAULT_COMMENT,
                "Changes": [
                    {
                        "Action": "CREATE",
                        "ResourceRecordSet": {
                            "Name": "_acme-challenge.example.com",
                            "Type": "TXT",
                            "TTL": 300,
                            "ResourceRecords": [{"Value": '"digest"'}],
                        },
                    },
                ],
            },
        )

    def test_delete_matches_created_record(self):
        client = MagicMock()
        client.change_resource_record_sets.return_value = {"ChangeInfo": {"Id": "/change/C2"}}
        provider = Route53Provider({"comment": "custom"}, 60, client=client)

        assert provider.delete_challenge_txt_record("Z1", "*.example.com", "digest") == "/change/C2"

        batch = client.change_resource_record_sets.call_args.kwargs["ChangeBatch"]
        assert "Comment" not in batch
        record = batch["Changes"][0]
        assert record["Action"] == "DELETE"
        assert record["ResourceRecordSet"] == {
            "Name": "_acme-challenge.example.com",
            "Type": "TXT",
            "TTL": 60,
            "ResourceRecords": [{"Value": '"digest"'}],
        }

    def test_custom_comment(self):
        client = MagicMock()
        client.change_resource_record_sets.return_value = {"ChangeInfo": {"Id": "C"}}
        Route53Provider({"comment": "custom"}, client=client).create_challenge_txt_record(
            "Z1",
            "example.com",
            "v",
        )
        batch = client.change_resource_record_sets.call_args.kwargs["ChangeBatch"]
        assert batch["Comment"] == "custom"

    def test_rejected_change(self):
        client = MagicMock()
        client.change_resource_record_sets.side_effect = _client_error(
            "InvalidChangeBatch",
            "record already exists",
            "ChangeResourceRecordSets",
        )
        with pytest.raises(DnsProviderError, match="InvalidChangeBatch: record already exists") as exc_info:
            Route53Provider(client=client).create_challenge_txt_record("Z1", "example.com", "v")
        assert exc_info.value.step.value == "dns"

    def test_connection_failure(self):
        client = MagicMock()
        client.change_resource_record_sets.side_effect = EndpointConnectionError(
            endpoint_url="https://route53.amazonaws.com",
        )
        with pytest.raises(DnsProviderError, match="change_resource_record_sets failed"):
            Route53Provider(client=client).delete_challenge_txt_record("Z1", "example.com", "v")


class TestChangeStatus:
    @pytest.mark.parametrize(("status", "expected"), [("PENDING", False), ("INSYNC", True)])
    def test_status(self, status, expected):
        client = MagicMock()
        client.get_change.return_value = {"ChangeInfo": {"Id": "C1", "Status": status}}

        assert Route53Provider(client=client).is_change_in_sync("C1") is expected
        client.get_change.assert_called_once_with(Id="C1")

    def test_no_credentials(self):
        client = MagicMock()
        client.get_change.side_effect = NoCredentialsError()
        with pytest.raises(DnsProviderError, match="No AWS credentials"):
            Route53Provider(client=client).is_change_in_sync("C1")
