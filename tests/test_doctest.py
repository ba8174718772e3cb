# Copyright (c) 2025 Joe Walter
# GNU General Public License v3.0

import doctest
import logging

from sftpmirror import core, log, paths, result

logger = logging.getLogger("sftpmirror.tests")

def load_tests(loader, tests, ignore):
	logger.info("Adding doctests to unittest.")
	tests.addTests(doctest.DocTestSuite(core))
	tests.addTests(doctest.DocTestSuite(log))
	tests.addTests(doctest.DocTestSuite(paths))
	tests.addTests(doctest.DocTestSuite(result))
	return tests
