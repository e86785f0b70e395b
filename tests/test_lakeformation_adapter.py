import boto3
import pytest
from botocore.stub import Stubber

from lftagops.core.adapters.lakeformation import LakeFormationAdapter
from lftagops.core.association import ColumnTagView
from lftagops.core.errors import RemoteServiceError
from lftagops.core.resources import Database, Table, TableWithColumns
from lftagops.core.tags import TagSet

PII = TagSet.of({"pii": ["true"]})


@pytest.fixture
def stubbed():
    client = boto3.client(
        "lakeformation",
        region_name="us-east-1",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
    )
    with Stubber(client) as stubber:
        yield LakeFormationAdapter(client), stubber
        stubber.assert_no_pending_responses()


def test_associate_sends_resource_and_tags(stubbed):
    adapter, stubber = stubbed
    stubber.add_response(
        "add_lf_tags_to_resource",
        {"Failures": []},
        expected_params={
            "CatalogId": "123456789012",
            "Resource": {"Table": {"DatabaseName": "db1", "Name": "t1"}},
            "LFTags": [{"TagKey": "pii", "TagValues": ["true"]}],
        },
    )

    assert adapter.associate("123456789012", Table(database_name="db1", name="t1"), PII) == []


def test_associate_returns_failures(stubbed):
    adapter, stubber = stubbed
    stubber.add_response(
        "add_lf_tags_to_resource",
        {
            "Failures": [
                {
                    "LFTag": {"TagKey": "pii", "TagValues": ["true"]},
                    "Error": {"ErrorCode": "AccessDeniedException", "ErrorMessage": "denied"},
                }
            ]
        },
        expected_params={
            "Resource": {"Database": {"Name": "db1"}},
            "LFTags": [{"TagKey": "pii", "TagValues": ["true"]}],
        },
    )

    failures = adapter.associate(None, Database(name="db1"), PII)

    assert len(failures) == 1
    assert failures[0].tag_key == "pii"
    assert failures[0].tag_values == ("true",)
    assert failures[0].error_code == "AccessDeniedException"


def test_query_requests_assigned_tags_only_and_splits_levels(stubbed):
    adapter, stubber = stubbed
    stubber.add_response(
        "get_resource_lf_tags",
        {
            "LFTagsOnColumns": [
                {"Name": "first", "LFTags": [{"TagKey": "pii", "TagValues": ["true"]}]},
                {"Name": "second", "LFTags": [{"TagKey": "pii", "TagValues": ["true"]}]},
            ]
        },
        expected_params={
            "Resource": {
                "TableWithColumns": {
                    "DatabaseName": "db1",
                    "Name": "t1",
                    "ColumnNames": ["first", "second"],
                }
            },
            "ShowAssignedLFTags": True,
        },
    )

    result = adapter.query(None, TableWithColumns("db1", "t1", {"second", "first"}), True)

    assert not result.tags_on_database
    assert not result.tags_on_table
    assert result.tags_on_columns == [
        ColumnTagView("first", PII),
        ColumnTagView("second", PII),
    ]


def test_query_maps_database_tags(stubbed):
    adapter, stubber = stubbed
    stubber.add_response(
        "get_resource_lf_tags",
        {"LFTagOnDatabase": [{"CatalogId": "123456789012", "TagKey": "pii", "TagValues": ["true"]}]},
        expected_params={
            "Resource": {"Database": {"Name": "db1"}},
            "ShowAssignedLFTags": True,
        },
    )

    result = adapter.query(None, Database(name="db1"), True)

    assert result.tags_on_database == PII
    assert result.tags_on_database.pairs[0].catalog_id == "123456789012"


def test_query_translates_client_errors(stubbed):
    adapter, stubber = stubbed
    stubber.add_client_error(
        "get_resource_lf_tags",
        service_error_code="EntityNotFoundException",
        service_message="Table not found",
        expected_params={
            "Resource": {"Table": {"DatabaseName": "db1", "TableWildcard": {}}},
            "ShowAssignedLFTags": True,
        },
    )

    with pytest.raises(RemoteServiceError) as exc_info:
        adapter.query(None, Table(database_name="db1", wildcard=True), True)

    assert exc_info.value.code == "EntityNotFoundException"
    assert exc_info.value.message == "Table not found"
    assert exc_info.value.operation == "GetResourceLFTags"


def test_disassociate_translates_concurrent_modification(stubbed):
    adapter, stubber = stubbed
    stubber.add_client_error(
        "remove_lf_tags_from_resource",
        service_error_code="ConcurrentModificationException",
        service_message="try again",
    )

    with pytest.raises(RemoteServiceError, match="ConcurrentModificationException"):
        adapter.disassociate(None, Database(name="db1"), PII)


def test_disassociate_without_failures(stubbed):
    adapter, stubber = stubbed
    stubber.add_response(
        "remove_lf_tags_from_resource",
        {},
        expected_params={
            "Resource": {"Database": {"Name": "db1"}},
            "LFTags": [{"TagKey": "pii", "TagValues": ["true"]}],
        },
    )

    assert adapter.disassociate(None, Database(name="db1"), PII) == []
