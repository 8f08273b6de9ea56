"""
Unit tests for ConfigLoader and YAML value parsing
"""

import pytest

from engine.config import ConfigLoader, parse_value
from engine.dag import (
    Deferred,
    Join,
    LiteralValue,
    Lookup,
    LookupRegistry,
    Reference,
    ResourceGraph,
    StaticInventory,
)
from engine.errors import ConfigError, DuplicateExportError, DuplicateNameError
from engine.synth import synthesize


class TestParseValue:
    """Test YAML value syntax"""

    def test_scalars_and_lists_are_literals(self):
        assert parse_value(443) == LiteralValue(443)
        assert parse_value(["latest"]) == LiteralValue(["latest"])

    def test_plain_mapping_is_literal(self):
        assert parse_value({"path": "/healthcheck/"}) == LiteralValue({"path": "/healthcheck/"})

    def test_reference_string(self):
        assert parse_value({"ref": "ecs-cluster.cluster_name"}) == Reference("ecs-cluster", "cluster_name")

    def test_reference_mapping(self):
        assert parse_value({"ref": {"node": "VPC", "field": "vpc_id"}}) == Reference("VPC", "vpc_id")

    def test_reference_without_field(self):
        with pytest.raises(ConfigError):
            parse_value({"ref": "VPC"}, "Instance.inputs.vpc")

    def test_deferred(self):
        assert parse_value({"deferred": True}) == Deferred()
        assert parse_value({"deferred": "db-secret"}) == Deferred(placeholder="db-secret")

    def test_deferred_false_rejected(self):
        with pytest.raises(ConfigError):
            parse_value({"deferred": False})

    def test_lookup(self):
        value = parse_value({"lookup": {"provider": "network", "query": {"vpc_id": "v"}, "field": "vpc_id"}})
        assert value == Lookup(provider="network", query={"vpc_id": "v"}, field="vpc_id")

    def test_join(self):
        value = parse_value({"join": ["a", {"ref": "B.c"}], "separator": ","})
        assert value == Join(["a", Reference("B", "c")], separator=",")

    def test_literal_marker(self):
        assert parse_value({"literal": {"ref": "kept"}}) == LiteralValue({"ref": "kept"})

    def test_ambiguous_markers(self):
        with pytest.raises(ConfigError, match="ambiguous"):
            parse_value({"ref": "A.b", "deferred": True})

    def test_reference_inside_list_rejected(self):
        """Test a ref nested in a literal list is an error, not a literal dict"""
        with pytest.raises(ConfigError, match="not allowed inside a literal"):
            parse_value([{"ref": "SG.security_group_id"}], "ALB.inputs.security_groups")

    def test_reference_inside_mapping_rejected(self):
        with pytest.raises(ConfigError, match="ALB.inputs.listener.certificate"):
            parse_value({"port": 443, "certificate": {"ref": "Cert.arn"}}, "ALB.inputs.listener")

    def test_reference_inside_lookup_query_rejected(self):
        with pytest.raises(ConfigError):
            parse_value({"lookup": {"provider": "network", "query": {"vpc_id": {"ref": "VPC.vpc_id"}}}})

    def test_list_of_references_as_join(self):
        value = parse_value({"join": [{"ref": "SG.id"}, {"ref": "Other.id"}], "separator": ","})
        assert value == Join([Reference("SG", "id"), Reference("Other", "id")], separator=",")


class TestConfigLoader:
    """Test stack loading from YAML"""

    def test_merge_files_and_declare(self, stack_dir):
        (stack_dir / "a.yaml").write_text(
            "stack: demo\n"
            "resources:\n"
            "  - name: VPC\n"
            "    kind: network\n"
            "    outputs:\n"
            "      vpc_id: vpc-1\n"
        )
        (stack_dir / "b.yaml").write_text(
            "stack: demo\n"
            "resources:\n"
            "  - name: Instance\n"
            "    kind: database\n"
            "    description: Main database\n"
            "    inputs:\n"
            "      vpc_id: {ref: VPC.vpc_id}\n"
            "    outputs:\n"
            "      password: {deferred: true}\n"
            "exports:\n"
            "  - name: db-password\n"
            "    value: {ref: Instance.password}\n"
            "    description: Generated password\n"
        )
        loader = ConfigLoader(stack_dir.parent.parent)

        config = loader.load_stack("demo")
        graph = ResourceGraph()
        exports, descriptions = loader.declare(graph, config)

        assert [r.name for r in config.resources] == ["VPC", "Instance"]
        assert graph.get("Instance").inputs["vpc_id"] == Reference("VPC", "vpc_id")
        assert graph.get("Instance").metadata["description"] == "Main database"
        assert exports == {"db-password": Reference("Instance", "password")}
        assert descriptions == {"db-password": "Generated password"}

    def test_missing_stack(self, tmp_path):
        with pytest.raises(ConfigError, match="No config directory"):
            ConfigLoader(tmp_path).load_stack("nope")

    def test_empty_stack_dir(self, stack_dir):
        with pytest.raises(ConfigError, match="No YAML files"):
            ConfigLoader(stack_dir.parent.parent).load_stack("demo")

    def test_invalid_resource(self, stack_dir):
        (stack_dir / "a.yaml").write_text("stack: demo\nresources:\n  - name: VPC\n")

        with pytest.raises(ConfigError, match="Failed to load"):
            ConfigLoader(stack_dir.parent.parent).load_stack("demo")

    def test_duplicate_resource_across_files(self, stack_dir):
        body = "stack: demo\nresources:\n  - name: Instance\n    kind: database\n"
        (stack_dir / "a.yaml").write_text(body)
        (stack_dir / "b.yaml").write_text(body)

        with pytest.raises(DuplicateNameError):
            ConfigLoader(stack_dir.parent.parent).load_stack("demo")

    def test_duplicate_export_across_files(self, stack_dir):
        body = "stack: demo\nexports:\n  - name: cluster-name\n    value: sonarqube\n"
        (stack_dir / "a.yaml").write_text(body)
        (stack_dir / "b.yaml").write_text(body)

        with pytest.raises(DuplicateExportError):
            ConfigLoader(stack_dir.parent.parent).load_stack("demo")


class TestBundledStack:
    """Test the bundled sonarqube topology"""

    @pytest.fixture
    def plan(self, repo_config_dir):
        loader = ConfigLoader(repo_config_dir)
        lookups = LookupRegistry()
        StaticInventory.from_yaml(loader.inventory_path).register_into(lookups)
        graph = ResourceGraph()
        exports, descriptions = loader.declare(graph, loader.load_stack("sonarqube"))
        return synthesize(
            graph, lookups, exports=exports, stack="sonarqube", descriptions=descriptions
        )

    def test_order(self, plan):
        assert plan.order[0] == "VPC"
        assert plan.order[-1] == "AdminService"
        assert len(plan.order) == 17
        assert plan.index("Instance") < plan.index("fargate-task-definition")
        assert plan.index("InstanceIngress") < plan.index("AdminService")
        assert plan.index("DefaultDomainCertificate") < plan.index("Listener")

    def test_jdbc_url_is_deferred_on_database_endpoint(self, plan):
        task = plan.get("fargate-task-definition")

        assert task.inputs["jdbc_url"] == Deferred(
            placeholder="jdbc:postgresql://${Instance.socket_address}/sonarqube",
            sources=("Instance.socket_address",),
        )

    def test_lookups_resolved(self, plan):
        alb = plan.get("ApplicationLoadBalancer")

        assert alb.inputs["vpc_id"] == LiteralValue("vpc-REPLACEME")
        assert alb.inputs["subnet_ids"] == LiteralValue("subnet-public-a,subnet-public-b")
        assert plan.get("DefaultDomainARecord").inputs["zone_id"] == LiteralValue("Z0000000REPLACEME")

    def test_exports(self, plan):
        assert set(plan.exports) == {
            "sonarqube-alb-listener-arn",
            "sonarqube-alb-security-groups",
            "sonarqube-cluster-name",
            "sonarqube-ecs-security-group-id",
        }
        assert plan.exports["sonarqube-cluster-name"].value == LiteralValue("sonarqube-ecs-cluster")
        assert plan.exports["sonarqube-cluster-name"].description == "Cluster"
        assert plan.exports["sonarqube-alb-listener-arn"].deferred
        assert plan.exports["sonarqube-ecs-security-group-id"].deferred

    def test_ecs_ingress_rules(self, plan):
        """Test the ECS group gets one ingress rule per port"""
        alb_rule = plan.get("ecs-security-group-ingress-alb")
        search_rule = plan.get("ecs-security-group-ingress-elasticsearch")

        assert alb_rule.inputs["port"] == LiteralValue(9000)
        assert alb_rule.inputs["description"] == LiteralValue("Allow from ALB")
        assert search_rule.inputs["port"] == LiteralValue(9092)
        assert search_rule.inputs["description"] == LiteralValue("Allow from ElasticSearch")
        for rule in (alb_rule, search_rule):
            assert set(rule.depends_on) == {"ecs-security-group", "albsg-sonarqube"}
            assert plan.index("albsg-sonarqube") < plan.index(rule.name)
