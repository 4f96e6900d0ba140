"""Tests for the operator settings."""

import os
import unittest
from unittest.mock import patch

import pydantic

from elastic_jupyter.config import OperatorSettings


class TestOperatorSettings(unittest.TestCase):
    """Test cases for loading settings."""

    @patch.dict(os.environ, {}, clear=True)
    def test_defaults(self):
        settings = OperatorSettings(_env_file=None)

        self.assertEqual(settings.reference_retry_seconds, 10.0)
        self.assertEqual(settings.api_retry_attempts, 5)
        self.assertEqual(settings.kernel_launch_command, "start-notebook.sh")
        self.assertTrue(settings.clusterwide)
        self.assertIsNone(settings.namespace)

    @patch.dict(
        os.environ,
        {
            "ELASTIC_JUPYTER_LOG_LEVEL": "DEBUG",
            "ELASTIC_JUPYTER_REFERENCE_RETRY_SECONDS": "2.5",
            "ELASTIC_JUPYTER_NAMESPACE": "team-a",
            "ELASTIC_JUPYTER_CLUSTERWIDE": "false",
        },
    )
    def test_environment_overrides(self):
        """Test that prefixed environment variables override the defaults."""
        settings = OperatorSettings(_env_file=None)

        self.assertEqual(settings.log_level, "DEBUG")
        self.assertEqual(settings.reference_retry_seconds, 2.5)
        self.assertEqual(settings.namespace, "team-a")
        self.assertFalse(settings.clusterwide)

    def test_invalid_values(self):
        """Test that retry settings are bounded."""
        with self.assertRaises(pydantic.ValidationError):
            OperatorSettings(_env_file=None, api_retry_attempts=0)

        with self.assertRaises(pydantic.ValidationError):
            OperatorSettings(_env_file=None, reference_retry_seconds=0)


if __name__ == "__main__":
    unittest.main()
