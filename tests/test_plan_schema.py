"""
Unit tests for plan schemas
"""

import json

from engine.dag import Deferred, Join, LiteralValue, Lookup, Reference
from engine.dag.values import value_from_dict, value_to_dict
from engine.synth import synthesize
from schemas.plan import ExportEntry, Plan


class TestValueSerialization:
    """Test value dictionaries"""

    def test_deferred_dict(self):
        value = Deferred(placeholder="jdbc://${Instance.endpoint}", sources=("Instance.endpoint",))

        assert value_to_dict(value) == {
            "type": "deferred",
            "placeholder": "jdbc://${Instance.endpoint}",
            "sources": ["Instance.endpoint"],
        }

    def test_declared_values_survive_dict_form(self):
        """Test unresolved variants can be stored and read back"""
        values = [
            Lookup(provider="network", query={"vpc_id": "v"}, field="cidr"),
            Join(["a", Reference("B", "c")], separator=","),
        ]
        for value in values:
            assert value_from_dict(json.loads(json.dumps(value_to_dict(value)))) == value


class TestPlan:
    """Test Plan serialization and accessors"""

    def test_json_round_trip(self, database_graph):
        plan = synthesize(
            database_graph,
            exports={"db-password": Reference("Instance", "password")},
            stack="sonarqube",
        )

        restored = Plan.from_json(plan.to_json())

        assert restored == plan

    def test_to_dict_shape(self, database_graph):
        plan = synthesize(database_graph, stack="sonarqube")

        data = plan.to_dict()

        assert data["stack"] == "sonarqube"
        assert [r["name"] for r in data["resources"]] == ["Instance", "AdminService"]
        assert data["resources"][1]["depends_on"] == ["Instance"]
        assert data["resources"][1]["inputs"]["db_endpoint"] == {
            "type": "literal", "value": "db.internal:5432",
        }

    def test_get_unknown(self, database_graph):
        assert synthesize(database_graph).get("Missing") is None

    def test_export_entry_json(self):
        entry = ExportEntry(name="cluster-name", value=LiteralValue("sonarqube-ecs-cluster"))

        data = json.loads(entry.to_json())

        assert data["deferred"] is False
        assert ExportEntry.from_json(entry.to_json()) == entry
