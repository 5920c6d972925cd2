from typing import Dict, Literal, Optional, Set

males_pronouns = {
    "eng": {"he", "him", "his", "himself"},
    "fra": {"il", "lui", "lui-même"},
}
females_pronouns = {
    "eng": {"she", "her", "hers", "herself"},
    "fra": {"elle", "elle-même"},
}
neutral_pronouns = {
    "eng": {"it", "its", "itself"},
    "fra": set(),
}
plural_pronouns = {
    "eng": {"they", "them", "their", "theirs", "themselves"},
    "fra": {"ils", "elles", "eux", "leur", "leurs", "eux-mêmes", "elles-mêmes"},
}
definite_determiners = {
    "eng": {"the", "this", "that", "these", "those"},
    "fra": {"le", "la", "les", "l'", "ce", "cet", "cette", "ces"},
}

PronounGender = Literal["male", "female", "neutral", "plural"]

#: ISO 639-3 codes of languages with pronoun lists
supported_langs = set(males_pronouns.keys())

__all__ = [
    "PronounGender",
    "supported_langs",
    "is_a_pronoun",
    "is_a_male_pronoun",
    "is_a_female_pronoun",
    "pronoun_gender",
    "is_a_definite_determiner",
]


def _lookup(table: Dict[str, Set[str]], word: str, lang: str, fn_name: str) -> bool:
    try:
        return word.lower() in table[lang]
    except KeyError:
        raise ValueError(
            f"unsupported lang for {fn_name}: {lang} (supported langs: {list(table.keys())})"
        )


def is_a_male_pronoun(word: str, lang: str = "eng") -> bool:
    return _lookup(males_pronouns, word, lang, "is_a_male_pronoun")


def is_a_female_pronoun(word: str, lang: str = "eng") -> bool:
    return _lookup(females_pronouns, word, lang, "is_a_female_pronoun")


def pronoun_gender(word: str, lang: str = "eng") -> Optional[PronounGender]:
    """
    :return: the gender of a pronoun (``'plural'`` for plural
        pronouns), or ``None`` if ``word`` is not a known pronoun.
    """
    if is_a_male_pronoun(word, lang):
        return "male"
    if is_a_female_pronoun(word, lang):
        return "female"
    if _lookup(neutral_pronouns, word, lang, "pronoun_gender"):
        return "neutral"
    if _lookup(plural_pronouns, word, lang, "pronoun_gender"):
        return "plural"
    return None


def is_a_pronoun(word: str, lang: str = "eng") -> bool:
    return not pronoun_gender(word, lang) is None


def is_a_definite_determiner(word: str, lang: str = "eng") -> bool:
    return _lookup(definite_determiners, word, lang, "is_a_definite_determiner")
