"""
Unit Tests for configuration, logging setup and metrics
"""

import json
import logging
import os
import sys
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from inventory_audit.utils.config_loader import ConfigLoader
from inventory_audit.utils.logger import JSONFormatter, TextFormatter, setupLogging
from inventory_audit.utils.metrics import MetricsCollector


class TestConfigLoader(unittest.TestCase):

    def setUp(self):
        self.tmpDir = tempfile.TemporaryDirectory()

    def tearDown(self):
        self.tmpDir.cleanup()

    def writeConfig(self, text: str) -> str:
        path = Path(self.tmpDir.name) / 'config.yaml'
        path.write_text(text)
        return str(path)

    def testDefaultsOnly(self):
        loader = ConfigLoader()
        config = loader.load()

        self.assertEqual(config['import']['batch_size'], 50)
        self.assertEqual(config['storage']['backend'], 'json')
        self.assertTrue(loader.validate())

    def testFileIsMergedOverDefaults(self):
        path = self.writeConfig(
            "import:\n"
            "  batch_size: 5\n"
            "normalization:\n"
            "  aliases:\n"
            "    nomenclature: [Item Nomenclature]\n"
        )
        loader = ConfigLoader(path)
        config = loader.load()

        self.assertEqual(config['import']['batch_size'], 5)
        self.assertEqual(config['normalization']['aliases'], {'nomenclature': ['Item Nomenclature']})
        self.assertTrue(config['normalization']['warn_on_invalid_formats'])
        self.assertEqual(loader.get('audit.default_limit'), 100)
        self.assertEqual(loader.get('audit.missing', 'fallback'), 'fallback')

    def testEnvironmentSubstitution(self):
        path = self.writeConfig("storage:\n  data_dir: ${INVENTORY_TEST_DATA_DIR}\n")

        with mock.patch.dict(os.environ, {'INVENTORY_TEST_DATA_DIR': '/srv/inventory'}):
            config = ConfigLoader(path).load()

        self.assertEqual(config['storage']['data_dir'], '/srv/inventory')

    def testEnvironmentFallback(self):
        path = self.writeConfig("storage:\n  data_dir: ${INVENTORY_TEST_UNSET:-records}\n")

        with mock.patch.dict(os.environ, {}, clear=False):
            os.environ.pop('INVENTORY_TEST_UNSET', None)
            config = ConfigLoader(path).load()

        self.assertEqual(config['storage']['data_dir'], 'records')

    def testMissingFile(self):
        with self.assertRaises(FileNotFoundError):
            ConfigLoader(str(Path(self.tmpDir.name) / 'absent.yaml')).load()

    def testValidationFailures(self):
        for text in [
            "import:\n  batch_size: 0\n",
            "import:\n  batch_size: many\n",
            "storage:\n  backend: postgres\n",
            "audit: none\n",
        ]:
            loader = ConfigLoader(self.writeConfig(text))
            loader.load()
            self.assertFalse(loader.validate(), text)

    def testShippedConfigIsValid(self):
        shipped = Path(__file__).resolve().parent.parent / 'config' / 'config.yaml'
        loader = ConfigLoader(str(shipped))
        loader.load()
        self.assertTrue(loader.validate())


class TestLogging(unittest.TestCase):

    def tearDown(self):
        logging.getLogger().handlers = []

    def testJsonFormatter(self):
        record = logging.LogRecord('InventoryService', logging.INFO, __file__, 10, 'Imported %d rows', (3,), None)
        data = json.loads(JSONFormatter().format(record))

        self.assertEqual(data['message'], 'Imported 3 rows')
        self.assertEqual(data['level'], 'INFO')
        self.assertEqual(data['logger'], 'InventoryService')

    def testContextFields(self):
        record = logging.LogRecord('AuditLogger', logging.INFO, __file__, 10, 'Item flagged', (), None)
        record.action = 'flagged'
        record.recordId = 3

        data = json.loads(JSONFormatter().format(record))
        self.assertEqual(data['action'], 'flagged')
        self.assertEqual(data['recordId'], 3)
        self.assertNotIn('rowIndex', data)

        line = TextFormatter().format(record)
        self.assertTrue(line.endswith('Item flagged [recordId=3 action=flagged]'), line)

    def testConsoleLoggingUsesStderr(self):
        setupLogging({'logging': {'level': 'INFO', 'output': 'stderr'}})

        root = logging.getLogger()
        self.assertEqual(len(root.handlers), 1)
        self.assertIs(root.handlers[0].stream, sys.stderr)
        self.assertEqual(ConfigLoader().load()['logging']['output'], 'stderr')

    def testSetupLoggingToFile(self):
        with tempfile.TemporaryDirectory() as tmpDir:
            logPath = Path(tmpDir) / 'logs' / 'audit.log'
            setupLogging({'logging': {'level': 'DEBUG', 'format': 'json', 'output': 'file', 'file_path': str(logPath)}})

            root = logging.getLogger()
            self.assertEqual(root.level, logging.DEBUG)
            self.assertEqual(len(root.handlers), 1)
            self.assertIsInstance(root.handlers[0].formatter, JSONFormatter)
            self.assertTrue(logPath.parent.exists())

            root.handlers[0].close()


class TestMetrics(unittest.TestCase):

    def testCounters(self):
        metrics = MetricsCollector()
        metrics.recordRowsSeen(3)
        metrics.recordRowsAccepted(2)
        metrics.recordRowsRejected(1)
        metrics.recordMutation('flagged')
        metrics.recordMutation('flagged')
        metrics.recordLogWriteFailure()

        data = metrics.getMetrics()
        self.assertEqual(data['rows'], {'seen': 3, 'accepted': 2, 'rejected': 1, 'imports_aborted': 0})
        self.assertEqual(data['mutations']['by_action'], {'flagged': 2})
        self.assertEqual(data['audit']['failures'], 1)

        metrics.reset()
        self.assertEqual(metrics.getMetrics()['mutations']['total'], 0)


if __name__ == '__main__':
    unittest.main()
