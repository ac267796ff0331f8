"""
factbridge Quickstart Example

This example runs a small rule set over a tokenized document:

1. Define a type system and annotate a document
2. Compile the rules in examples/rules/
3. Run them; every annotation becomes a fact
4. Read the surviving nodes back from the index
"""

import logging
from pathlib import Path

from factbridge import Document, RuleRunner, TypeSystem, node_graph

HERE = Path(__file__).parent


def build_document() -> Document:
    ts = TypeSystem()
    ts.define("Token", {"form": "String", "pos": "String"}, parent="Annotation")
    ts.define("Sentence", {"tokens": ("Token", True)}, parent="Annotation")

    text = "Ada Lovelace wrote the first program"
    doc = Document(text, ts)
    tokens = []
    offset = 0
    for form in text.split():
        begin = text.index(form, offset)
        offset = begin + len(form)
        tokens.append(doc.annotate("Token", begin, offset, form=form, pos="NN"))
    doc.annotate("Sentence", 0, len(text), tokens=tokens)
    return doc


def main():
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    print("=" * 60)
    print("factbridge Quickstart")
    print("=" * 60)

    doc = build_document()
    sentence = next(doc.select("Sentence"))
    graph = node_graph(sentence)
    print(f"\nSentence graph: {graph.number_of_nodes()} nodes, {graph.number_of_edges()} edges")

    runner = RuleRunner(rules_path=str(HERE / "rules"), log_path=str(HERE / "logs" / "quickstart"))
    runner.initialize()
    print(f"Compiled {len(runner.rule_set)} rules")

    result = runner.process(doc)

    print("\n" + "-" * 40)
    print(f"Loaded:       {result.loaded} facts")
    print(f"Rules fired:  {result.rules_fired}")
    print(f"Final facts:  {result.fact_count}")
    print("-" * 40)

    for token in result.index.get("Token"):
        print(f"  {doc.covered_text(token):<10} {token['pos']}")

    print(f"\nExecution log: {result.log_path}")


if __name__ == "__main__":
    main()
