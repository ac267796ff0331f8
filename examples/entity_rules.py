"""
Conditions and actions for the quickstart rule file.
"""

STOPWORDS = {"the", "a", "an", "of", "in"}


def is_stopword(token):
    return token["form"].lower() in STOPWORDS


def drop(context, token):
    context.retract()


def is_capitalized(token):
    return token["form"][:1].isupper() and token["pos"] != "NNP"


def mark_proper_noun(context, token):
    token["pos"] = "NNP"
    context.update()


def count_tokens(context, sentence):
    context.insert({"sentence": sentence.id, "tokens": len(sentence["tokens"])})
