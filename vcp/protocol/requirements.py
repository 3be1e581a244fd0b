"""Credential requirement descriptors.

A ProofRequirements instance holds one CredentialReqs per credential label.
Descriptors start empty and only ever grow: each constraint method appends.
validate() checks every referenced label before a request leaves the process.
"""

from typing import Dict, Iterator, List, Mapping, Optional, Set

from .api_models import (
    CredentialReqs,
    EqInfo,
    InAccumInfo,
    InRangeInfo,
    IndexAndLabel,
)
from .exceptions import MisconfiguredScenario
from .shared_params import SharedParams


class ProofRequirements:
    """Ordered credential label -> CredentialReqs."""

    def __init__(self):
        self._reqs: Dict[str, CredentialReqs] = {}

    def add_credential(self, label: str, signer_label: str) -> CredentialReqs:
        if label in self._reqs:
            raise MisconfiguredScenario.duplicate_label("credential", label)
        reqs = CredentialReqs(signer_label=signer_label)
        self._reqs[label] = reqs
        return reqs

    def __getitem__(self, label: str) -> CredentialReqs:
        try:
            return self._reqs[label]
        except KeyError:
            raise MisconfiguredScenario.unknown_credential(label)

    def __contains__(self, label: object) -> bool:
        return label in self._reqs

    def __iter__(self) -> Iterator[str]:
        return iter(self._reqs)

    def __len__(self) -> int:
        return len(self._reqs)

    def labels(self) -> List[str]:
        return list(self._reqs)

    def as_dict(self) -> Dict[str, CredentialReqs]:
        return dict(self._reqs)

    # -------------------------------------------------------------------------
    # Constraint builders
    # -------------------------------------------------------------------------

    def disclose(self, label: str, *indices: int) -> None:
        reqs = self[label]
        for index in indices:
            if index not in reqs.disclosed:
                reqs.disclosed.append(index)

    def require_equal(self, label: str, from_index: int, to_label: str, to_index: int) -> None:
        self[label].equal_to.append(
            EqInfo(from_index=from_index, to_label=to_label, to_index=to_index)
        )

    def require_in_range(
        self,
        label: str,
        index: int,
        min_label: str,
        max_label: str,
        proving_key_label: str,
    ) -> None:
        self[label].in_range.append(
            InRangeInfo(
                index=index,
                min_label=min_label,
                max_label=max_label,
                range_proving_key_label=proving_key_label,
            )
        )

    def require_in_accumulator(
        self,
        label: str,
        index: int,
        membership_proving_key_label: str,
        accumulator_public_data_label: str,
        accumulator_label: str,
        seq_num_label: str,
    ) -> None:
        self[label].in_accum.append(
            InAccumInfo(
                index=index,
                membership_proving_key_label=membership_proving_key_label,
                accumulator_public_data_label=accumulator_public_data_label,
                accumulator_label=accumulator_label,
                accumulator_seq_num_label=seq_num_label,
            )
        )

    def require_not_in_accumulator(self, label: str, index: int, accumulator_label: str) -> None:
        self[label].not_in_accum.append(IndexAndLabel(index=index, label=accumulator_label))

    def require_encrypted_for(self, label: str, index: int, authority_label: str) -> None:
        self[label].encrypted_for.append(IndexAndLabel(index=index, label=authority_label))

    # -------------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------------

    def has_disclosures(self) -> bool:
        return any(reqs.disclosed for reqs in self._reqs.values())

    def referenced_labels(self, label: str) -> Set[str]:
        """Every shared parameter label the credential's descriptor uses."""
        reqs = self[label]
        labels = {reqs.signer_label}
        for r in reqs.in_range:
            labels.update((r.min_label, r.max_label, r.range_proving_key_label))
        for a in reqs.in_accum:
            labels.update((
                a.membership_proving_key_label,
                a.accumulator_public_data_label,
                a.accumulator_label,
                a.accumulator_seq_num_label,
            ))
        for n in reqs.not_in_accum:
            labels.add(n.label)
        for e in reqs.encrypted_for:
            labels.add(e.label)
        return labels

    def constrained_indices(self, label: str) -> Set[int]:
        reqs = self[label]
        indices = set(reqs.disclosed)
        indices.update(e.from_index for e in reqs.equal_to)
        indices.update(r.index for r in reqs.in_range)
        indices.update(a.index for a in reqs.in_accum)
        indices.update(n.index for n in reqs.not_in_accum)
        indices.update(e.index for e in reqs.encrypted_for)
        return indices

    def validate(
        self,
        shared: SharedParams,
        attribute_counts: Optional[Mapping[str, int]] = None,
    ) -> None:
        """Fail fast on anything the engine would reject for a missing label.

        Args:
            shared: Registry every referenced label must exist in.
            attribute_counts: Optional credential label -> number of values,
                used to bound attribute indices and equality targets.
        """
        for label in self._reqs:
            shared.require(sorted(self.referenced_labels(label)), referenced_by=label)
            for eq in self._reqs[label].equal_to:
                if eq.to_label not in self._reqs:
                    raise MisconfiguredScenario.unknown_credential(eq.to_label)
            if attribute_counts is None:
                continue
            if label not in attribute_counts:
                raise MisconfiguredScenario.unknown_credential(label)
            size = attribute_counts[label]
            for index in sorted(self.constrained_indices(label)):
                if not 0 <= index < size:
                    raise MisconfiguredScenario.invalid_index(label, index, size)
            for eq in self._reqs[label].equal_to:
                target_size = attribute_counts.get(eq.to_label)
                if target_size is None:
                    raise MisconfiguredScenario.unknown_credential(eq.to_label)
                if not 0 <= eq.to_index < target_size:
                    raise MisconfiguredScenario.invalid_index(eq.to_label, eq.to_index, target_size)
