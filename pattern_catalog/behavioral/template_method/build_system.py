"""
Build pipelines sharing one skeleton.

``BuildPipeline.run`` always goes checkout -> install -> lint -> test ->
build -> package -> deploy. ``lint`` and ``deploy`` are hooks that
subclasses switch on. A failing step ends the run with a failed
``BuildResult`` listing the steps that completed.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional

from ...exceptions import ExternalServiceException
from ...logging_config import get_logger
from ...registry import Category, demo, run_module
from ...simulation import simulate_latency_sync

logger = get_logger(__name__)


@dataclass
class BuildResult:
    project: str
    success: bool
    completed_steps: List[str] = field(default_factory=list)
    failed_step: Optional[str] = None
    error: Optional[str] = None
    artifact: Optional[str] = None
    output: List[str] = field(default_factory=list)


class BuildPipeline(ABC):
    STEPS = ("checkout", "install", "lint", "test", "build", "package", "deploy")

    def __init__(self, project: str, failing_step: Optional[str] = None, deploy_target: Optional[str] = None):
        self.project = project
        self.failing_step = failing_step
        self.deploy_target = deploy_target
        self._output: List[str] = []

    def run(self) -> BuildResult:
        result = BuildResult(self.project, success=False, output=self._output)
        for step in self.STEPS:
            if step == "lint" and not self.should_lint():
                continue
            if step == "deploy" and not self.should_deploy():
                continue
            try:
                self._execute(step)
            except ExternalServiceException as e:
                logger.error("Build step failed", project=self.project, step=step, error=e.message)
                result.failed_step = step
                result.error = e.message
                return result
            result.completed_steps.append(step)
        result.success = True
        result.artifact = self.artifact_name()
        return result

    def _execute(self, step: str) -> None:
        simulate_latency_sync(20)
        if step == self.failing_step:
            raise ExternalServiceException(step, f"{self.sh(step)} exited with status 1")
        if step == "deploy":
            self.deploy()
        else:
            self._output.append(f"$ {self.sh(step)}")

    def sh(self, step: str) -> str:
        if step == "checkout":
            return f"git clone git@example.com:{self.project}.git"
        return getattr(self, f"{step}_command")()

    @abstractmethod
    def install_command(self) -> str: ...

    @abstractmethod
    def test_command(self) -> str: ...

    @abstractmethod
    def build_command(self) -> str: ...

    @abstractmethod
    def package_command(self) -> str: ...

    @abstractmethod
    def artifact_name(self) -> str: ...

    def lint_command(self) -> str:
        return "true"

    def should_lint(self) -> bool:
        """Hook: lint step is optional."""
        return False

    def should_deploy(self) -> bool:
        """Hook: deploy only when a target is configured."""
        return self.deploy_target is not None

    def deploy(self) -> None:
        self._output.append(f"deploy {self.artifact_name()} -> {self.deploy_target}")


class PythonBuild(BuildPipeline):
    def install_command(self) -> str:
        return "pip install -e .[test]"

    def lint_command(self) -> str:
        return "ruff check ."

    def should_lint(self) -> bool:
        return True

    def test_command(self) -> str:
        return "pytest -q"

    def build_command(self) -> str:
        return "python -m build"

    def package_command(self) -> str:
        return "twine check dist/*"

    def artifact_name(self) -> str:
        return f"{self.project}-1.0.0-py3-none-any.whl"


class NodeBuild(BuildPipeline):
    def install_command(self) -> str:
        return "npm ci"

    def lint_command(self) -> str:
        return "npm run lint"

    def should_lint(self) -> bool:
        return True

    def test_command(self) -> str:
        return "npm test"

    def build_command(self) -> str:
        return "npm run build"

    def package_command(self) -> str:
        return "npm pack"

    def artifact_name(self) -> str:
        return f"{self.project}-1.0.0.tgz"


class GoBuild(BuildPipeline):
    def install_command(self) -> str:
        return "go mod download"

    def test_command(self) -> str:
        return "go test ./..."

    def build_command(self) -> str:
        return f"go build -o bin/{self.project}"

    def package_command(self) -> str:
        return f"tar czf {self.artifact_name()} bin/"

    def artifact_name(self) -> str:
        return f"{self.project}-linux-amd64.tar.gz"


@demo(
    "template-method.build-system",
    pattern="Template Method",
    category=Category.BEHAVIORAL,
    title="Python, Node and Go builds through one pipeline skeleton",
)
def run_demo() -> None:
    builds = [
        PythonBuild("pattern-catalog", deploy_target="pypi"),
        NodeBuild("web-frontend", failing_step="test"),
        GoBuild("edge-proxy", deploy_target="k8s/prod"),
    ]
    for build in builds:
        result = build.run()
        status = f"OK -> {result.artifact}" if result.success else f"FAILED at {result.failed_step}: {result.error}"
        print(f"{type(build).__name__:<12} {build.project:<16} {status}")
        print(f"{'':<12} completed: {', '.join(result.completed_steps)}")
        for line in result.output:
            print(f"{'':<14}{line}")


if __name__ == "__main__":
    run_module(run_demo)
