"""
Tip observation tables for discrete characters.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence, Union

import numpy as np
import pandas as pd
from loguru import logger

from ..core.evidence import TipEvidence
from ..exceptions import InvalidTipEvidence

logger = logger.bind(name="traitml")

# Observations treated as missing data
MISSING_CODES = {"", "?", "-", "NA", "nan"}
# Separator for uncertain observations, e.g. "0&1"
AMBIGUITY_SEPARATOR = "&"


@dataclass
class TraitData:
    """
    Discrete character observations for a set of taxa.

    Attributes
    ----------
    names : list[str]
        Taxon names
    values : list[Optional[str]]
        Observed value per taxon as text, None for missing data
    states : list[str]
        Ordered state labels; state i of the model is ``states[i]``
    """

    names: list[str]
    values: list[Optional[str]]
    states: list[str]

    @property
    def n_taxa(self) -> int:
        return len(self.names)

    @property
    def n_states(self) -> int:
        return len(self.states)

    @classmethod
    def from_dataframe(
        cls,
        df: pd.DataFrame,
        taxon_column: Optional[str] = None,
        trait_column: Optional[str] = None,
        states: Optional[Sequence[str]] = None,
    ) -> "TraitData":
        """
        Read observations from a DataFrame.

        Parameters
        ----------
        df : pd.DataFrame
            Table with one row per taxon
        taxon_column : str, optional
            Column holding taxon names (default: first column)
        trait_column : str, optional
            Column holding observed states (default: second column)
        states : sequence of str, optional
            State ordering. Defaults to the sorted observed labels.

        Returns
        -------
        TraitData

        Raises
        ------
        InvalidTipEvidence
            If columns are missing, taxa are duplicated, fewer than two
            states are known, or an observation is not a known state
        """
        if df.shape[1] < 2 and (taxon_column is None or trait_column is None):
            raise InvalidTipEvidence("Trait table needs a taxon column and a trait column")
        taxon_column = df.columns[0] if taxon_column is None else taxon_column
        trait_column = df.columns[1] if trait_column is None else trait_column
        for column in (taxon_column, trait_column):
            if column not in df.columns:
                raise InvalidTipEvidence(
                    f"Column '{column}' not found. Available columns: {list(df.columns)}"
                )

        taxa = df[taxon_column].astype(str).str.strip()
        duplicated = sorted(set(taxa[taxa.duplicated(keep=False)]))
        if duplicated:
            raise InvalidTipEvidence(f"Duplicated taxa in trait table: {duplicated}")
        names = taxa.tolist()

        values = []
        for raw in df[trait_column].tolist():
            if pd.isna(raw):
                values.append(None)
                continue
            # Integers read as floats (e.g. 1.0 with missing rows) map back to "1"
            if isinstance(raw, float) and raw.is_integer():
                raw = int(raw)
            text = AMBIGUITY_SEPARATOR.join(
                part.strip() for part in str(raw).split(AMBIGUITY_SEPARATOR)
            )
            values.append(None if text in MISSING_CODES else text)

        observed = sorted({
            label
            for value in values if value is not None
            for label in value.split(AMBIGUITY_SEPARATOR)
        })
        if states is None:
            states = observed
        else:
            states = [str(s) for s in states]
            unknown = sorted(set(observed) - set(states))
            if unknown:
                raise InvalidTipEvidence(f"Observed values {unknown} are not in states {states}")
        if len(states) < 2:
            raise InvalidTipEvidence(
                f"At least two states are needed, found {states}. Pass `states` to "
                f"declare unobserved ones."
            )

        return cls(names=names, values=values, states=list(states))

    @classmethod
    def from_csv(
        cls,
        path: Union[str, Path],
        taxon_column: Optional[str] = None,
        trait_column: Optional[str] = None,
        states: Optional[Sequence[str]] = None,
        sep: Optional[str] = None,
    ) -> "TraitData":
        """
        Read observations from a CSV or TSV file.

        The separator is a tab for ``.tsv``/``.tab``/``.txt`` files and a
        comma otherwise, unless ``sep`` is given. All columns are read as
        text so labels like "01" survive.
        """
        path = Path(path)
        if sep is None:
            sep = "\t" if path.suffix.lower() in (".tsv", ".tab", ".txt") else ","
        df = pd.read_csv(path, sep=sep, dtype=str, keep_default_na=True)
        return cls.from_dataframe(df, taxon_column, trait_column, states)

    def state_index(self) -> dict[str, int]:
        return {label: i for i, label in enumerate(self.states)}

    def to_evidence(self, tip_names: Optional[Sequence[str]] = None) -> TipEvidence:
        """
        Build tip evidence rows.

        Parameters
        ----------
        tip_names : sequence of str, optional
            Tree tips to build rows for, in order. Defaults to all taxa in
            table order. Taxa in the table but not in ``tip_names`` are
            ignored with a warning.

        Returns
        -------
        TipEvidence
            One-hot rows for observed states, ones at every listed state for
            ambiguous values and all-ones rows for missing data

        Raises
        ------
        InvalidTipEvidence
            If a tip has no row in the table
        """
        if tip_names is None:
            tip_names = self.names
        tip_names = list(tip_names)

        row_of = {name: i for i, name in enumerate(self.names)}
        missing = [name for name in tip_names if name not in row_of]
        if missing:
            raise InvalidTipEvidence(f"No trait data for tree tips: {missing}")
        extra = sorted(set(self.names) - set(tip_names))
        if extra:
            logger.warning(f"ignoring {len(extra)} taxa not in the tree: {extra}")

        index = self.state_index()
        matrix = np.zeros((len(tip_names), self.n_states))
        for row, name in enumerate(tip_names):
            value = self.values[row_of[name]]
            if value is None:
                matrix[row, :] = 1.0
                continue
            for label in value.split(AMBIGUITY_SEPARATOR):
                matrix[row, index[label]] = 1.0

        n_missing = int(np.all(matrix == 1.0, axis=1).sum())
        if n_missing:
            logger.debug(f"{n_missing} tips treated as missing data")
        return TipEvidence(matrix, tip_names)
