"""
Name similarity scoring for park linking.

Park names from the NPS API and from Wikidata differ mostly in punctuation,
abbreviations and spacing ("Joshua Tree N.P." vs "Joshua Tree NP"). Names are
normalized down to lowercase ASCII letters and digits, then compared with a
normalized Levenshtein edit distance.
"""

import re

_NON_ALPHANUMERIC = re.compile(r"[^a-z0-9]")


def normalize_name(name: str | None) -> str:
    """
    Normalize a name for comparison.

    Lower-cases the name and strips every character that is not an ASCII
    letter or digit (spaces, punctuation, accented characters).

    Args:
        name: Original name (None is treated as empty)

    Returns:
        Normalized name
    """
    if not name:
        return ""
    return _NON_ALPHANUMERIC.sub("", name.lower())


def levenshtein_distance(str1: str, str2: str) -> int:
    """
    Calculate the Levenshtein edit distance between two strings.

    Insertions, deletions and substitutions each cost 1. Uses the standard
    (len1 + 1) x (len2 + 1) dynamic programming table.

    Args:
        str1: First string
        str2: Second string

    Returns:
        Minimum number of single-character edits turning str1 into str2
    """
    m, n = len(str1), len(str2)

    dp = [[0] * (n + 1) for _ in range(m + 1)]
    for i in range(m + 1):
        dp[i][0] = i
    for j in range(n + 1):
        dp[0][j] = j

    for i in range(1, m + 1):
        for j in range(1, n + 1):
            if str1[i - 1] == str2[j - 1]:
                dp[i][j] = dp[i - 1][j - 1]
            else:
                dp[i][j] = 1 + min(dp[i - 1][j], dp[i][j - 1], dp[i - 1][j - 1])

    return dp[m][n]


def calculate_name_similarity(name1: str | None, name2: str | None) -> float:
    """
    Calculate similarity between two names.

    Args:
        name1: First name
        name2: Second name

    Returns:
        Similarity score between 0 and 1. 1.0 when the names are identical
        after normalization, 0.0 when either normalizes to an empty string.
    """
    normalized1 = normalize_name(name1)
    normalized2 = normalize_name(name2)

    if not normalized1 or not normalized2:
        return 0.0

    if normalized1 == normalized2:
        return 1.0

    distance = levenshtein_distance(normalized1, normalized2)
    max_length = max(len(normalized1), len(normalized2))

    return 1 - distance / max_length
