# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Client identification sent with every HTTP request.

Nodes, faucets and indexers see ``x-aptos-client: aptos-kit-python/<version>``.
"""

import importlib.metadata as metadata
import unittest

PACKAGE_NAME = "aptos-kit"


class Metadata:
    APTOS_HEADER = "x-aptos-client"

    @staticmethod
    def get_aptos_header_val() -> str:
        """Header value naming this library and its installed version.

        Falls back to ``unknown`` when running from a source tree that was
        never installed.
        """
        try:
            version = metadata.version(PACKAGE_NAME)
        except metadata.PackageNotFoundError:
            version = "unknown"
        return f"aptos-kit-python/{version}"


class Test(unittest.TestCase):
    def test_header_value(self):
        value = Metadata.get_aptos_header_val()
        self.assertTrue(value.startswith("aptos-kit-python/"))
        self.assertGreater(len(value), len("aptos-kit-python/"))


if __name__ == "__main__":
    unittest.main()
