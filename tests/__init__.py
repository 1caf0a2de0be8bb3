# Make "tests" importable as a package for absolute imports used in conftest/tests.
