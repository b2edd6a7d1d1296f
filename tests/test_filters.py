import pytest

from flow_api_client.filters import all_of, any_of, condition, entity_ref


def test_condition_triple():
    assert condition("code", "starts_with", "sh") == ["code", "starts_with", "sh"]
    assert condition("id", "in", [1, 2]) == ["id", "in", [1, 2]]


def test_condition_rejects_unknown_relation():
    with pytest.raises(ValueError, match="equals"):
        condition("code", "equals", "sh010")


def test_condition_rejects_empty_field():
    with pytest.raises(ValueError):
        condition("", "is", "sh010")


def test_nested_groups():
    expr = all_of(
        condition("project", "is", entity_ref("Project", 70)),
        any_of(
            condition("sg_status_list", "is", "ip"),
            condition("sg_status_list", "is", "rev"),
        ),
    )
    assert expr == {
        "filter_operator": "all",
        "filters": [
            ["project", "is", {"type": "Project", "id": 70}],
            {
                "filter_operator": "any",
                "filters": [
                    ["sg_status_list", "is", "ip"],
                    ["sg_status_list", "is", "rev"],
                ],
            },
        ],
    }


def test_empty_group_rejected():
    with pytest.raises(ValueError):
        any_of()
