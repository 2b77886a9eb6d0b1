"""
Cloud infrastructure factory.

Each provider factory creates a compute instance, a storage bucket and a
load balancer that belong together (same naming scheme, same billing).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List

from pydantic import BaseModel, Field

from ...exceptions import UnsupportedTypeException
from ...logging_config import get_logger
from ...registry import Category, demo, run_module
from ...simulation import generate_id, simulate_latency

logger = get_logger(__name__)

HOURS_PER_MONTH = 730


class ResourceConfig(BaseModel):
    name: str
    region: str = "eu-central"
    instance_type: str = "medium"
    storage_gb: int = Field(default=100, ge=1)


@dataclass
class ResourceStatus:
    id: str
    kind: str
    provider: str
    service: str
    status: str
    monthly_cost: float
    metadata: Dict[str, str] = field(default_factory=dict)


class CloudResource(ABC):
    provider = ""
    service = ""
    kind = ""
    id_prefix = "res"

    def __init__(self, config: ResourceConfig):
        self.config = config
        self.status = "pending"
        self.resource_id = ""

    async def deploy(self) -> ResourceStatus:
        logger.info("Deploying resource", provider=self.provider, service=self.service, name=self.config.name)
        await simulate_latency(200)
        self.resource_id = generate_id(self.id_prefix)
        self.status = "running"
        return self.describe()

    async def terminate(self) -> None:
        self.status = "terminated"

    def describe(self) -> ResourceStatus:
        return ResourceStatus(
            id=self.resource_id,
            kind=self.kind,
            provider=self.provider,
            service=self.service,
            status=self.status,
            monthly_cost=round(self.monthly_cost(), 2),
            metadata={"region": self.config.region, "name": self.config.name},
        )

    @abstractmethod
    def monthly_cost(self) -> float:
        """Estimated monthly cost in USD."""


class ComputeInstance(CloudResource):
    kind = "compute"
    hourly_rate = 0.0

    def monthly_cost(self) -> float:
        return self.hourly_rate * HOURS_PER_MONTH


class StorageBucket(CloudResource):
    kind = "storage"
    gb_month_rate = 0.0

    def monthly_cost(self) -> float:
        return self.gb_month_rate * self.config.storage_gb


class LoadBalancer(CloudResource):
    kind = "load_balancer"
    hourly_rate = 0.0

    def monthly_cost(self) -> float:
        return self.hourly_rate * HOURS_PER_MONTH


class AwsEc2Instance(ComputeInstance):
    provider, service, id_prefix, hourly_rate = "aws", "EC2", "i", 0.05


class AwsS3Bucket(StorageBucket):
    provider, service, id_prefix, gb_month_rate = "aws", "S3", "s3", 0.023


class AwsElb(LoadBalancer):
    provider, service, id_prefix, hourly_rate = "aws", "ELB", "elb", 0.0225


class AzureVm(ComputeInstance):
    provider, service, id_prefix, hourly_rate = "azure", "Virtual Machines", "vm", 0.041


class AzureBlobContainer(StorageBucket):
    provider, service, id_prefix, gb_month_rate = "azure", "Blob Storage", "blob", 0.018


class AzureLoadBalancer(LoadBalancer):
    provider, service, id_prefix, hourly_rate = "azure", "Load Balancer", "lb", 0.032


class GcpComputeEngine(ComputeInstance):
    provider, service, id_prefix, hourly_rate = "gcp", "Compute Engine", "gce", 0.038


class GcsBucket(StorageBucket):
    provider, service, id_prefix, gb_month_rate = "gcp", "Cloud Storage", "gcs", 0.020


class GcpLoadBalancer(LoadBalancer):
    provider, service, id_prefix, hourly_rate = "gcp", "Cloud Load Balancing", "glb", 0.025


class CloudFactory(ABC):
    provider = ""

    @abstractmethod
    def create_compute(self, config: ResourceConfig) -> ComputeInstance: ...

    @abstractmethod
    def create_storage(self, config: ResourceConfig) -> StorageBucket: ...

    @abstractmethod
    def create_load_balancer(self, config: ResourceConfig) -> LoadBalancer: ...


class AwsFactory(CloudFactory):
    provider = "aws"

    def create_compute(self, config: ResourceConfig) -> ComputeInstance:
        return AwsEc2Instance(config)

    def create_storage(self, config: ResourceConfig) -> StorageBucket:
        return AwsS3Bucket(config)

    def create_load_balancer(self, config: ResourceConfig) -> LoadBalancer:
        return AwsElb(config)


class AzureFactory(CloudFactory):
    provider = "azure"

    def create_compute(self, config: ResourceConfig) -> ComputeInstance:
        return AzureVm(config)

    def create_storage(self, config: ResourceConfig) -> StorageBucket:
        return AzureBlobContainer(config)

    def create_load_balancer(self, config: ResourceConfig) -> LoadBalancer:
        return AzureLoadBalancer(config)


class GcpFactory(CloudFactory):
    provider = "gcp"

    def create_compute(self, config: ResourceConfig) -> ComputeInstance:
        return GcpComputeEngine(config)

    def create_storage(self, config: ResourceConfig) -> StorageBucket:
        return GcsBucket(config)

    def create_load_balancer(self, config: ResourceConfig) -> LoadBalancer:
        return GcpLoadBalancer(config)


_PROVIDERS = {"aws": AwsFactory, "azure": AzureFactory, "gcp": GcpFactory}


def get_cloud_factory(provider: str) -> CloudFactory:
    factory_cls = _PROVIDERS.get(provider.lower())
    if factory_cls is None:
        raise UnsupportedTypeException("cloud provider", provider, _PROVIDERS.keys())
    return factory_cls()


@dataclass
class DeploymentSummary:
    provider: str
    app: str
    resources: List[ResourceStatus]

    @property
    def total_monthly_cost(self) -> float:
        return round(sum(r.monthly_cost for r in self.resources), 2)


class InfrastructureDeployer:
    """Client: deploys a web stack with whichever provider family it gets."""

    def __init__(self, factory: CloudFactory):
        self.factory = factory

    def plan(self, app: str, region: str = "eu-central", storage_gb: int = 100) -> List[CloudResource]:
        return [
            self.factory.create_compute(ResourceConfig(name=f"{app}-web", region=region)),
            self.factory.create_storage(ResourceConfig(name=f"{app}-assets", region=region, storage_gb=storage_gb)),
            self.factory.create_load_balancer(ResourceConfig(name=f"{app}-lb", region=region)),
        ]

    async def deploy(self, app: str, region: str = "eu-central", storage_gb: int = 100) -> DeploymentSummary:
        statuses = [await resource.deploy() for resource in self.plan(app, region, storage_gb)]
        return DeploymentSummary(provider=self.factory.provider, app=app, resources=statuses)


def estimate_costs(app: str, storage_gb: int = 100) -> Dict[str, float]:
    """Monthly cost of the same stack on every provider, cheapest first."""
    estimates = {}
    for provider, factory_cls in _PROVIDERS.items():
        resources = InfrastructureDeployer(factory_cls()).plan(app, storage_gb=storage_gb)
        estimates[provider] = round(sum(r.monthly_cost() for r in resources), 2)
    return dict(sorted(estimates.items(), key=lambda kv: kv[1]))


@demo(
    "abstract-factory.cloud-infrastructure",
    pattern="Abstract Factory",
    category=Category.CREATIONAL,
    title="Provider-consistent cloud resources",
)
async def run_demo() -> None:
    for provider in ("aws", "azure", "gcp"):
        summary = await InfrastructureDeployer(get_cloud_factory(provider)).deploy("shop")
        print(f"\n{provider.upper()} deployment:")
        for resource in summary.resources:
            print(f"  {resource.kind:<14} {resource.service:<22} {resource.id:<14} ${resource.monthly_cost:>8.2f}/month")
        print(f"  total ${summary.total_monthly_cost:.2f}/month")

    print(f"\nCost comparison for 500 GB: {estimate_costs('shop', storage_gb=500)}")


if __name__ == "__main__":
    run_module(run_demo)
