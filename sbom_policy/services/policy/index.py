"""
Modulo `index` — costruzione delle tabelle di lookup delle policy di licenza.

A partire dalla lista ordinata di `LicensePolicy` letta dalla configurazione
vengono costruite due tabelle:

- by_id:     SPDX id -> esattamente una LicensePolicy
- by_family: nome famiglia -> lista ordinata di LicensePolicy

Le voci "famiglia" (con `children`) vengono espanse in una policy sintetica per
ogni id figlio. Il `PolicyIndex` risultante è immutabile e può essere letto da
più thread senza lock.
"""

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from sbom_policy.models.schemas import LicensePolicy
from .errors import IndexBuildError
from .spdx_utils import is_valid_family_key, is_valid_spdx_id, is_valid_usage_policy

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PolicyIndex:
    by_id: Mapping[str, LicensePolicy]
    by_family: Mapping[str, Tuple[LicensePolicy, ...]]

    def get_by_id(self, spdx_id: str) -> Optional[LicensePolicy]:
        return self.by_id.get(spdx_id)

    def get_by_family(self, family: str) -> Tuple[LicensePolicy, ...]:
        return self.by_family.get(family, ())

    def families(self) -> List[str]:
        """Chiavi famiglia nell'ordine in cui compaiono nella configurazione."""
        return list(self.by_family.keys())

    def policies(self) -> List[LicensePolicy]:
        """Tutte le policy indicizzate (figli sintetici inclusi), raggruppate per famiglia."""
        return [p for group in self.by_family.values() for p in group]

    def __len__(self):
        return len(self.by_id)


def is_valid_policy_entry(policy: LicensePolicy) -> bool:
    """
    Verifica se una voce di configurazione può essere indicizzata.

    Un `id` vuoto è ammesso: indica una voce "famiglia".
    """
    if policy.id and not is_valid_spdx_id(policy.id):
        logger.warning("Invalid SPDX id: `%s` (name=`%s`). Skipping...", policy.id, policy.name)
        return False

    if not policy.name.strip():
        logger.warning("Missing name for policy (id=`%s`, family=`%s`)", policy.id, policy.family)

    if not is_valid_usage_policy(policy.usage_policy):
        logger.warning("Invalid usage policy: `%s` (id=`%s`, name=`%s`). Skipping...",
                       policy.usage_policy, policy.id, policy.name)
        return False

    if not is_valid_family_key(policy.family):
        logger.warning("Invalid family: `%s` (id=`%s`, name=`%s`). Skipping...",
                       policy.family, policy.id, policy.name)
        return False

    if not policy.id and not policy.children:
        logger.debug("Family `%s` has no children (SPDX ids) listed", policy.family)

    return True


class _IndexBuilder:
    def __init__(self, strict_families: bool):
        self.strict_families = strict_families
        self.by_id: Dict[str, LicensePolicy] = {}
        self.by_family: Dict[str, List[LicensePolicy]] = {}

    def add(self, policy: LicensePolicy) -> None:
        if not is_valid_policy_entry(policy):
            return

        if policy.id:
            existing = self.by_id.get(policy.id)
            if existing is not None and existing != policy:
                raise IndexBuildError(
                    f"Conflicting policy for SPDX id `{policy.id}` "
                    f"(`{existing.usage_policy}` in family `{existing.family}`, "
                    f"`{policy.usage_policy}` in family `{policy.family}`)",
                    policy,
                )
            if existing is not None:
                logger.debug("Duplicate policy for SPDX id `%s` ignored", policy.id)
                return

        members = self.by_family.get(policy.family)
        if members:
            self._check_family_usage(policy, members)

        if policy.id:
            logger.debug("ID index: adding id=`%s`, name=`%s`, family=`%s`", policy.id, policy.name, policy.family)
            self.by_id[policy.id] = policy
        logger.debug("Family index: adding id=`%s`, family=`%s`", policy.id, policy.family)
        self.by_family.setdefault(policy.family, []).append(policy)

        for child_id in policy.children:
            # grandchildren are not supported: synthesized children never carry children
            child = policy.model_copy(update={"id": child_id, "children": [], "notes": [], "urls": []})
            self.add(child)

    def _check_family_usage(self, policy: LicensePolicy, members: List[LicensePolicy]) -> None:
        for current in members:
            if current.usage_policy == policy.usage_policy:
                continue
            message = (
                f"Policy (id=`{policy.id}`, usage=`{policy.usage_policy}`) is in conflict with "
                f"`{current.usage_policy}` declared in the same family `{policy.family}`"
            )
            if self.strict_families:
                raise IndexBuildError(message, policy)
            logger.warning(message)
            return

    def freeze(self) -> PolicyIndex:
        return PolicyIndex(
            by_id=MappingProxyType(dict(self.by_id)),
            by_family=MappingProxyType({k: tuple(v) for k, v in self.by_family.items()}),
        )


def build_policy_index(policies: Iterable[LicensePolicy], strict_families: bool = False) -> PolicyIndex:
    """
    Costruisce il `PolicyIndex` dalla lista ordinata di policy.

    Argomenti:
        policies (Iterable[LicensePolicy]): voci della configurazione, in ordine.
        strict_families (bool): se True, una famiglia con usage policy discordanti
            è un errore; altrimenti viene solo registrato un warning.

    Solleva:
        IndexBuildError: due policy diverse per lo stesso SPDX id, oppure una
            famiglia discordante in modalità strict.
    """
    builder = _IndexBuilder(strict_families)
    for policy in policies:
        builder.add(policy)
    index = builder.freeze()
    logger.info("License policy index built: %d SPDX ids, %d families", len(index.by_id), len(index.by_family))
    return index
