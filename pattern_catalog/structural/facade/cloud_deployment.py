"""
Deployment facade.

``deploy`` runs build, push, provision, load balancer configuration and a
health check. A failing health check rolls the environment back to the
previous release.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

from ...exceptions import ExternalServiceException, ValidationException
from ...logging_config import get_logger
from ...registry import Category, demo, run_module
from ...simulation import generate_id, simulate_latency

logger = get_logger(__name__)

ENVIRONMENTS = {"dev", "staging", "prod"}


@dataclass
class Release:
    app: str
    version: str
    image: str
    instances: List[str]


@dataclass
class DeploymentReport:
    app: str
    version: str
    env: str
    success: bool
    steps: List[str] = field(default_factory=list)
    error: Optional[str] = None


class ImageBuilder:
    async def build(self, app: str, version: str) -> str:
        await simulate_latency(300)
        return f"{app}:{version}"


class ContainerRegistry:
    def __init__(self, host: str = "registry.example.com"):
        self.host = host
        self.images: Set[str] = set()

    async def push(self, image: str) -> str:
        await simulate_latency(150)
        ref = f"{self.host}/{image}"
        self.images.add(ref)
        return ref


class Provisioner:
    async def provision(self, env: str, image: str, count: int) -> List[str]:
        await simulate_latency(200)
        return [generate_id(f"{env}-i") for _ in range(count)]

    async def terminate(self, instances: List[str]) -> None:
        await simulate_latency(50)


class LoadBalancerConfigurator:
    def __init__(self) -> None:
        self.targets: Dict[str, List[str]] = {}

    async def point_to(self, env: str, instances: List[str]) -> None:
        self.targets[env] = list(instances)


class HealthChecker:
    def __init__(self, failing_versions: Optional[Set[str]] = None):
        self.failing_versions = failing_versions or set()

    async def check(self, version: str, instances: List[str]) -> bool:
        await simulate_latency(100)
        return version not in self.failing_versions


class DeploymentFacade:
    def __init__(self, health_checker: Optional[HealthChecker] = None, instances_per_env: int = 2):
        self.builder = ImageBuilder()
        self.registry = ContainerRegistry()
        self.provisioner = Provisioner()
        self.load_balancer = LoadBalancerConfigurator()
        self.health = health_checker or HealthChecker()
        self.instances_per_env = instances_per_env
        self._current: Dict[str, Release] = {}
        self._previous: Dict[str, Release] = {}

    async def deploy(self, app_name: str, version: str, env: str) -> DeploymentReport:
        if env not in ENVIRONMENTS:
            raise ValidationException("env", env, f"must be one of {sorted(ENVIRONMENTS)}")
        report = DeploymentReport(app_name, version, env, success=False)

        image = await self.builder.build(app_name, version)
        report.steps.append(f"built {image}")
        ref = await self.registry.push(image)
        report.steps.append(f"pushed {ref}")
        instances = await self.provisioner.provision(env, ref, self.instances_per_env)
        report.steps.append(f"provisioned {len(instances)} instances")
        await self.load_balancer.point_to(env, instances)
        report.steps.append("load balancer updated")

        release = Release(app_name, version, ref, instances)
        if not await self.health.check(version, instances):
            report.steps.append("health check failed")
            await self.provisioner.terminate(instances)
            restored = await self.rollback(env)
            report.steps.append(f"rolled back to {restored.version}" if restored else "no previous release")
            report.error = "health check failed"
            logger.warning("Deployment rolled back", app=app_name, version=version, env=env)
            return report

        report.steps.append("health check passed")
        if env in self._current:
            self._previous[env] = self._current[env]
        self._current[env] = release
        report.success = True
        logger.info("Deployment succeeded", app=app_name, version=version, env=env)
        return report

    async def rollback(self, env: str) -> Optional[Release]:
        """Re-point the load balancer at the last good release."""
        release = self._current.get(env)
        if release is None:
            return None
        await self.load_balancer.point_to(env, release.instances)
        return release

    async def revert(self, env: str) -> Release:
        """Go back to the release before the current one."""
        previous = self._previous.pop(env, None)
        if previous is None:
            raise ExternalServiceException("deployment", f"no earlier release in {env}")
        self._current[env] = previous
        await self.load_balancer.point_to(env, previous.instances)
        return previous

    def status(self, env: str) -> Dict[str, object]:
        release = self._current.get(env)
        return {
            "env": env,
            "version": release.version if release else None,
            "instances": list(self.load_balancer.targets.get(env, [])),
        }


@demo(
    "facade.cloud-deployment",
    pattern="Facade",
    category=Category.STRUCTURAL,
    title="One-call deployment with automatic rollback",
)
async def run_demo() -> None:
    facade = DeploymentFacade(HealthChecker(failing_versions={"1.2.0"}))

    for version in ("1.0.0", "1.1.0", "1.2.0"):
        report = await facade.deploy("shop-api", version, "prod")
        print(f"\n{version}: {'OK' if report.success else 'FAILED: ' + report.error}")
        for step in report.steps:
            print(f"  - {step}")

    print(f"\nStatus: {facade.status('prod')}")
    reverted = await facade.revert("prod")
    print(f"Manual revert -> {reverted.version}; status {facade.status('prod')['version']}")


if __name__ == "__main__":
    run_module(run_demo)
