from typing import Dict, Iterable, List, Sequence

SHARED = "shared"
UNIQUE = "unique"
PARTIAL = "partial"


def compute_skill_overlaps(skill_lists: Sequence[Iterable[str]]) -> Dict[str, str]:
    """
    Classifies every skill across a small set of compared candidates.

    A skill held by all candidates is "shared", by exactly one "unique",
    anything in between "partial". Matching is case-insensitive and a skill
    repeated within one candidate's list counts once. Callers only run this
    for two or more candidates.

    Args:
        skill_lists (Sequence[Iterable[str]]): One skill list per selected candidate.
    Returns:
        Dict[str, str]: Lower-cased skill -> "shared" | "unique" | "partial".
    """
    skill_sets: List[set] = [{skill.lower() for skill in skills} for skills in skill_lists]
    total = len(skill_sets)

    counts: Dict[str, int] = {}
    for skills in skill_sets:
        for skill in skills:
            counts[skill] = counts.get(skill, 0) + 1

    overlaps = {}
    for skill, count in counts.items():
        if count == total:
            overlaps[skill] = SHARED
        elif count == 1:
            overlaps[skill] = UNIQUE
        else:
            overlaps[skill] = PARTIAL
    return overlaps


def classify_skill(overlaps: Dict[str, str], skill: str) -> str:
    '''
    Category of a skill as rendered (original casing), looked up by its lower-cased form.
    '''
    return overlaps.get(skill.lower(), PARTIAL)
