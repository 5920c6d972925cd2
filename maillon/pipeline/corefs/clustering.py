from typing import Any, Dict, List, Optional, Sequence, Set
from maillon.errors import InvalidInputError
from maillon.pipeline.core import AntecedentLink, Mention, PipelineStep
from maillon.resources.pronouns import is_a_pronoun, is_a_definite_determiner


class DisjointSet:
    """A union-find structure over the integers ``0..size-1``, with
    path compression and union by size."""

    def __init__(self, size: int) -> None:
        self.parents = list(range(size))
        self.sizes = [1] * size

    def __len__(self) -> int:
        return len(self.parents)

    def find(self, x: int) -> int:
        root = x
        while self.parents[root] != root:
            root = self.parents[root]
        while self.parents[x] != root:
            self.parents[x], x = root, self.parents[x]
        return root

    def union(self, x: int, y: int) -> int:
        """Merge the sets containing ``x`` and ``y``.

        :return: the root of the merged set
        """
        x_root, y_root = self.find(x), self.find(y)
        if x_root == y_root:
            return x_root
        if self.sizes[x_root] < self.sizes[y_root]:
            x_root, y_root = y_root, x_root
        self.parents[y_root] = x_root
        self.sizes[x_root] += self.sizes[y_root]
        return x_root

    def sets(self) -> List[List[int]]:
        """
        :return: all sets, each sorted in increasing order, ordered by
            their smallest element.
        """
        root_to_set: Dict[int, List[int]] = {}
        for x in range(len(self.parents)):
            root_to_set.setdefault(self.find(x), []).append(x)
        return list(root_to_set.values())


def build_chains(
    mentions: Sequence[Mention],
    links: Sequence[AntecedentLink],
    keep_singletons: bool = False,
) -> List[List[Mention]]:
    """Convert antecedent links into coreference chains.

    :param mentions: mentions, ordered by document position
    :param links: antecedent links over ``mentions`` indices
    :param keep_singletons: if ``False``, mentions that are not linked
        to any other mention are not part of the output.

    :return: disjoint chains, ordered by the position of their first
        mention.  Each chain is ordered by document position.

    :raise InvalidInputError: if a link refers to a mention that does
        not exist, does not point backward, or if a mention has more
        than one link.
    """
    disjoint_set = DisjointSet(len(mentions))

    linked_mentions = set()
    for link in links:
        if not 0 <= link.mention_idx < len(mentions):
            raise InvalidInputError(f"link {link} refers to an unknown mention")
        if link.mention_idx in linked_mentions:
            raise InvalidInputError(
                f"mention {link.mention_idx} has more than one antecedent link"
            )
        linked_mentions.add(link.mention_idx)
        if link.antecedent_idx is None:
            continue
        if not 0 <= link.antecedent_idx < link.mention_idx:
            raise InvalidInputError(
                f"link {link} does not point to a preceding mention"
            )
        disjoint_set.union(link.mention_idx, link.antecedent_idx)

    # sets are ordered by their smallest index, which is the position
    # of their first mention since mentions are in document order
    chains = []
    for indices in disjoint_set.sets():
        if len(indices) < 2 and not keep_singletons:
            continue
        chains.append([mentions[i] for i in indices])
    return chains


def chain_representative(chain: List[Mention], lang: str = "eng") -> Optional[Mention]:
    """Select the most informative mention of a chain.

    Preference order:

    1. the first proper-name-like mention (capitalized, and not
       starting with a pronoun or a definite determiner)
    2. the longest definite noun phrase
    3. the first mention

    :return: a mention of ``chain``, or ``None`` if ``chain`` is empty
    """
    if len(chain) == 0:
        return None

    for mention in chain:
        first = mention.tokens[0]
        if (
            first[:1].isupper()
            and not is_a_pronoun(first, lang)
            and not is_a_definite_determiner(first, lang)
        ):
            return mention

    definite_nps = [
        m
        for m in chain
        if len(m.tokens) > 1 and is_a_definite_determiner(m.tokens[0], lang)
    ]
    if len(definite_nps) > 0:
        return max(definite_nps, key=lambda m: len(m.text()))

    return chain[0]


class ClusterBuilder(PipelineStep):
    """Build coreference chains from antecedent links"""

    def __init__(self, keep_singletons: bool = False) -> None:
        """
        :param keep_singletons: if ``True``, mentions that are not
            linked to any other mention form their own chain.
        """
        self.keep_singletons = keep_singletons
        super().__init__()

    def __call__(
        self,
        mentions: List[Mention],
        antecedent_links: List[AntecedentLink],
        **kwargs,
    ) -> Dict[str, Any]:
        chains = build_chains(mentions, antecedent_links, self.keep_singletons)
        return {"corefs": chains}

    def needs(self) -> Set[str]:
        return {"mentions", "antecedent_links"}

    def production(self) -> Set[str]:
        return {"corefs"}
