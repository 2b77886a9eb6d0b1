"""
Unit tests for the Reader use cases.
"""

import pytest

from pattern_catalog.exceptions import ValidationException
from pattern_catalog.functional.reader import (
    MemoryLogger,
    Reader,
    describe_environment,
    production_env,
    register_user,
    sandbox_env,
    with_welcome_disabled,
)


class TestReader:
    """Tests for the Reader combinators."""

    def test_ask_and_asks(self):
        """Test reading the environment."""
        assert Reader.ask().run({"x": 1}) == {"x": 1}
        assert Reader.asks(lambda env: env["x"]).run({"x": 1}) == 1

    def test_of_ignores_env(self):
        """Test constant readers."""
        assert Reader.of(5).run(None) == 5

    def test_map_and_flat_map(self):
        """Test both steps see the same environment."""
        reader = Reader.asks(lambda env: env["a"]).flat_map(lambda a: Reader.asks(lambda env: a + env["b"]))
        assert reader.map(str).run({"a": 1, "b": 2}) == "3"

    def test_ap(self):
        """Test applying a wrapped function."""
        value = Reader.asks(lambda env: env["n"])
        fn = Reader.asks(lambda env: lambda n: n * env["factor"])
        assert value.ap(fn).run({"n": 4, "factor": 3}) == 12

    def test_local(self):
        """Test local modifies the environment for one reader only."""
        reader = Reader.asks(lambda env: env["level"])
        assert reader.local(lambda env: {**env, "level": "debug"}).run({"level": "info"}) == "debug"


class TestRegistrationWorkflow:
    """Tests for the registration workflow."""

    def test_production_sends_welcome(self):
        """Test the production environment emails the user."""
        env = production_env()
        user = register_user("Ada@Example.com", "correct-horse-battery").run(env)
        assert user["email"] == "ada@example.com"
        assert user["environment"] == "production"
        assert env.mailer.outbox[0]["to"] == "ada@example.com"

    def test_testing_env_captures_logs(self):
        """Test the test environment skips email and records logs."""
        env = sandbox_env()
        register_user("ada@example.com", "password1").run(env)
        assert env.mailer.outbox == []
        assert isinstance(env.logger, MemoryLogger)
        assert env.logger.lines[0] == "INFO Registering ada@example.com"

    def test_password_policy_from_config(self):
        """Test the minimum length comes from the environment."""
        register_user("a@example.com", "ninechars").run(sandbox_env())
        with pytest.raises(ValidationException):
            register_user("a@example.com", "ninechars").run(production_env())

    def test_duplicate_email(self):
        """Test duplicate registrations fail."""
        env = sandbox_env()
        workflow = register_user("a@example.com", "password1")
        workflow.run(env)
        with pytest.raises(ValidationException):
            workflow.run(env)

    def test_local_override(self):
        """Test welcome email can be disabled for one workflow."""
        env = production_env()
        with_welcome_disabled(register_user("a@example.com", "a-long-password!")).run(env)
        assert env.mailer.outbox == []

    def test_describe_environment(self):
        """Test composing readers with ap."""
        assert describe_environment().run(sandbox_env()) == "test -> sqlite://:memory:"
