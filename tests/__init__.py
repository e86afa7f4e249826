# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Rentbook test suite.

Unit tests per engine plus integration tests that run a full billing cycle
against the in-memory gateway.
"""
