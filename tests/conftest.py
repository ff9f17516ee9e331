"""
Fixture condivise dalla suite di test.

Le policy di test seguono lo schema "Good / Bad / Maybe": tre licenze fittizie,
una per ciascuno dei tre stati di usage policy configurabili, più un paio di
licenze SPDX reali usate negli scenari end-to-end.
"""

import pytest

from sbom_policy.models.schemas import LicensePolicy
from sbom_policy.services.policy import LicensePolicyConfig, PolicyResolver, build_policy_index


def make_policy(**fields) -> LicensePolicy:
    """Costruisce una LicensePolicy con valori di default ragionevoli."""
    data = {"name": fields.get("id") or fields.get("family", "Test"), "family": fields.get("id", "Test")}
    data.update(fields)
    return LicensePolicy(**data)


@pytest.fixture
def policy_factory():
    return make_policy


@pytest.fixture
def good_bad_maybe_policies():
    return [
        make_policy(id="Good", family="Good", usagePolicy="allow"),
        make_policy(id="Bad", family="Bad", usagePolicy="deny"),
        make_policy(id="Maybe", family="Maybe", usagePolicy="needs-review"),
        make_policy(id="Apache-2.0", family="Apache", usagePolicy="allow"),
        make_policy(id="GPL-2.0-only", family="GPL", usagePolicy="deny"),
        make_policy(family="LGPL", name="GNU Lesser General Public License", usagePolicy="needs-review",
                    children=["LGPL-2.1-only", "LGPL-3.0-only"]),
    ]


@pytest.fixture
def good_bad_maybe_index(good_bad_maybe_policies):
    return build_policy_index(good_bad_maybe_policies)


@pytest.fixture
def resolver(good_bad_maybe_index):
    return PolicyResolver(good_bad_maybe_index)


@pytest.fixture
def spdx_resolver(good_bad_maybe_index):
    return PolicyResolver(good_bad_maybe_index, combination_mode="spdx")


@pytest.fixture
def default_config():
    """Configurazione basata sul file di policy incluso nel package."""
    return LicensePolicyConfig()
