"""
Unit tests for StackCoordinator and the runner entry point
"""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from engine.dag import LookupRegistry
from engine.errors import ResourceLookupError
from engine.runtime import StackCoordinator
from engine.runtime.main import RuntimeConfig, main


class TestStackCoordinator:
    """Test stack coordination"""

    def test_synthesize_bundled_stack(self, repo_config_dir):
        coordinator = StackCoordinator(stack="sonarqube", config_dir=repo_config_dir)

        plan = coordinator.synthesize()

        assert plan.stack == "sonarqube"
        assert coordinator.plan is plan
        assert set(coordinator.lookups.list_providers()) == {"network", "dns_zone"}

    def test_metrics(self, repo_config_dir):
        coordinator = StackCoordinator(stack="sonarqube", config_dir=repo_config_dir)
        coordinator.synthesize()

        metrics = coordinator.get_metrics()

        assert metrics["nodes"] == 17
        assert metrics["exports"] == 4
        assert metrics["plan_order"][0] == "VPC"
        assert "sonarqube-cluster-name" not in metrics["deferred_exports"]
        assert "sonarqube-alb-listener-arn" in metrics["deferred_exports"]

    def test_lookup_failure_propagates(self, repo_config_dir):
        """Test an empty registry makes synthesis fail on the first lookup"""
        coordinator = StackCoordinator(
            stack="sonarqube", config_dir=repo_config_dir, lookups=LookupRegistry()
        )

        with pytest.raises(ResourceLookupError):
            coordinator.synthesize()
        assert coordinator.plan is None

    def test_publish(self, repo_config_dir):
        coordinator = StackCoordinator(stack="sonarqube", config_dir=repo_config_dir)
        plan = coordinator.synthesize()
        nats_client = MagicMock()
        nats_client.publish_plan = AsyncMock(return_value=5)

        published = asyncio.run(coordinator.publish(plan, nats_client))

        assert published == 5
        nats_client.publish_plan.assert_awaited_once_with(plan)


class TestMain:
    """Test the runner"""

    def test_writes_plan_file(self, repo_config_dir, tmp_path):
        output = tmp_path / "plan.json"
        config = RuntimeConfig(stack="sonarqube", config_dir=repo_config_dir, output=output)

        exit_code = asyncio.run(main(config))

        assert exit_code == 0
        data = json.loads(output.read_text())
        assert data["stack"] == "sonarqube"
        assert data["resources"][-1]["name"] == "AdminService"

    def test_unknown_stack_exit_code(self, tmp_path):
        config = RuntimeConfig(stack="missing", config_dir=tmp_path)

        assert asyncio.run(main(config)) == 1

    def test_publish_flag(self, repo_config_dir, tmp_path):
        config = RuntimeConfig(
            stack="sonarqube", config_dir=repo_config_dir,
            output=tmp_path / "plan.json", publish=True,
        )
        client = MagicMock()
        client.connect = AsyncMock()
        client.close = AsyncMock()
        client.publish_plan = AsyncMock(return_value=5)

        with patch("engine.runtime.main.NatsClient", return_value=client):
            assert asyncio.run(main(config)) == 0

        client.connect.assert_awaited_once()
        client.publish_plan.assert_awaited_once()
        client.close.assert_awaited_once()

    def test_config_from_env(self, monkeypatch):
        monkeypatch.setenv("STACK", "demo")
        monkeypatch.setenv("CONFIG_DIR", "/etc/stacks")
        monkeypatch.setenv("PUBLISH", "true")
        monkeypatch.delenv("OUTPUT", raising=False)

        config = RuntimeConfig.from_env()

        assert config.stack == "demo"
        assert str(config.config_dir) == "/etc/stacks"
        assert config.output is None
        assert config.publish is True
