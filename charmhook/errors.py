# Copyright 2026 Canonical Ltd.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
# http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Exceptions shared across the charmhook package."""

from __future__ import annotations


class ContractViolation(RuntimeError):  # noqa: N818
    """Raised when the hook invocation or the framework itself breaks an invariant.

    Examples are an invalid hook name, a relation id that doesn't belong to any
    known relation, or closing a tool runner twice. These are never expected
    in a correct deployment, so callers should not try to recover from them.
    """
