"""
maillon: span-based coreference resolution as a step pipeline, and
coreference evaluation (MUC, B-cubed, CEAF and CoNLL-F1).
"""
