from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

THEMES: tuple[str, ...] = ("animals", "food", "toys", "nature", "school")
OPERATIONS: tuple[str, ...] = ("add", "subtract", "compare")


def plural(count: int, singular: str, many: str) -> str:
    return singular if count == 1 else many


@dataclass(frozen=True)
class WordTemplate:
    theme: str
    operation: str
    story: Callable[[int, int], str]
    question: Callable[[int, int], str]
    visual: str


def _more(n1: int, n2: int, one: str, many: str) -> str:
    return plural(abs(n1 - n2), one, many)


TEMPLATES: tuple[WordTemplate, ...] = (
    # animals
    WordTemplate(
        "animals", "add",
        lambda a, b: (
            f"{a} {plural(a, 'puppy was', 'puppies were')} playing in the park. "
            f"{b} more {plural(b, 'puppy', 'puppies')} came to join them."
        ),
        lambda a, b: "How many puppies are playing now?",
        "🐶",
    ),
    WordTemplate(
        "animals", "subtract",
        lambda a, b: (
            f"There {plural(a, 'was', 'were')} {a} {plural(a, 'bird', 'birds')} sitting on a tree. "
            f"{b} {plural(b, 'bird', 'birds')} flew away."
        ),
        lambda a, b: "How many birds are still on the tree?",
        "🐦",
    ),
    WordTemplate(
        "animals", "compare",
        lambda a, b: (
            f"The red barn has {a} {plural(a, 'cow', 'cows')}. "
            f"The blue barn has {b} {plural(b, 'cow', 'cows')}."
        ),
        lambda a, b: (
            f"How many more {_more(a, b, 'cow does', 'cows does')} the "
            f"{'red' if a > b else 'blue'} barn have?"
        ),
        "🐄",
    ),
    WordTemplate(
        "animals", "add",
        lambda a, b: (
            f"A farmer has {a} {plural(a, 'chicken', 'chickens')}. "
            f"She got {b} more {plural(b, 'chicken', 'chickens')} from the market."
        ),
        lambda a, b: "How many chickens does she have now?",
        "🐔",
    ),
    # food
    WordTemplate(
        "food", "add",
        lambda a, b: (
            f"You had {a} {plural(a, 'slice', 'slices')} of pizza. "
            f"Your friend gave you {b} more {plural(b, 'slice', 'slices')}."
        ),
        lambda a, b: "How many pizza slices do you have now?",
        "🍕",
    ),
    WordTemplate(
        "food", "subtract",
        lambda a, b: (
            f"There {plural(a, 'was', 'were')} {a} {plural(a, 'cookie', 'cookies')} in the jar. "
            f"You ate {b} {plural(b, 'cookie', 'cookies')}."
        ),
        lambda a, b: "How many cookies are left?",
        "🍪",
    ),
    WordTemplate(
        "food", "compare",
        lambda a, b: f"Sarah has {a} {plural(a, 'apple', 'apples')}. Tom has {b} {plural(b, 'apple', 'apples')}.",
        lambda a, b: (
            f"How many more {_more(a, b, 'apple does', 'apples does')} "
            f"{'Sarah' if a > b else 'Tom'} have?"
        ),
        "🍎",
    ),
    WordTemplate(
        "food", "add",
        lambda a, b: (
            f"Mom baked {a} {plural(a, 'cupcake', 'cupcakes')}. "
            f"Then she baked {b} more {plural(b, 'cupcake', 'cupcakes')}."
        ),
        lambda a, b: "How many cupcakes did mom bake in total?",
        "🧁",
    ),
    # toys
    WordTemplate(
        "toys", "add",
        lambda a, b: f"You have {a} toy {plural(a, 'car', 'cars')}. Your friend has {b} toy {plural(b, 'car', 'cars')}.",
        lambda a, b: "How many toy cars do you both have together?",
        "🚗",
    ),
    WordTemplate(
        "toys", "subtract",
        lambda a, b: (
            f"There {plural(a, 'was', 'were')} {a} {plural(a, 'balloon', 'balloons')} at the party. "
            f"{b} {plural(b, 'balloon', 'balloons')} popped."
        ),
        lambda a, b: "How many balloons are still good?",
        "🎈",
    ),
    WordTemplate(
        "toys", "compare",
        lambda a, b: (
            f"The toy store has {a} {plural(a, 'doll', 'dolls')}. "
            f"The gift shop has {b} {plural(b, 'doll', 'dolls')}."
        ),
        lambda a, b: (
            f"How many more {_more(a, b, 'doll does', 'dolls does')} the "
            f"{'toy store' if a > b else 'gift shop'} have?"
        ),
        "🧸",
    ),
    WordTemplate(
        "toys", "add",
        lambda a, b: (
            f"Sarah has {a} {plural(a, 'doll', 'dolls')}. "
            f"She got {b} more {plural(b, 'doll', 'dolls')} for her birthday."
        ),
        lambda a, b: "How many dolls does Sarah have now?",
        "👧",
    ),
    # nature
    WordTemplate(
        "nature", "add",
        lambda a, b: (
            f"In the garden, there {plural(a, 'is', 'are')} {a} red {plural(a, 'flower', 'flowers')} "
            f"and {b} yellow {plural(b, 'flower', 'flowers')}."
        ),
        lambda a, b: "How many flowers are there in total?",
        "🌸🌻",
    ),
    WordTemplate(
        "nature", "subtract",
        lambda a, b: (
            f"There {plural(a, 'was', 'were')} {a} {plural(a, 'apple', 'apples')} on the tree. "
            f"{b} {plural(b, 'apple', 'apples')} fell down."
        ),
        lambda a, b: "How many apples are still on the tree?",
        "🍎",
    ),
    WordTemplate(
        "nature", "compare",
        lambda a, b: (
            f"The big tree has {a} {plural(a, 'bird', 'birds')}. "
            f"The small tree has {b} {plural(b, 'bird', 'birds')}."
        ),
        lambda a, b: (
            f"How many more {_more(a, b, 'bird does', 'birds does')} the "
            f"{'big' if a > b else 'small'} tree have?"
        ),
        "🐦",
    ),
    WordTemplate(
        "nature", "add",
        lambda a, b: (
            f"{a} {plural(a, 'butterfly was', 'butterflies were')} in the garden. "
            f"{b} more {plural(b, 'butterfly', 'butterflies')} came."
        ),
        lambda a, b: "How many butterflies are there now?",
        "🦋",
    ),
    # school
    WordTemplate(
        "school", "add",
        lambda a, b: (
            f"Tom has {a} {plural(a, 'pencil', 'pencils')}. "
            f"His friend gave him {b} more {plural(b, 'pencil', 'pencils')}."
        ),
        lambda a, b: "How many pencils does Tom have now?",
        "✏️",
    ),
    WordTemplate(
        "school", "subtract",
        lambda a, b: (
            f"There {plural(a, 'was', 'were')} {a} {plural(a, 'book', 'books')} on the shelf. "
            f"{b} {plural(b, 'book', 'books')} {plural(b, 'was', 'were')} borrowed."
        ),
        lambda a, b: "How many books are left on the shelf?",
        "📚",
    ),
    WordTemplate(
        "school", "compare",
        lambda a, b: (
            f"Class A has {a} {plural(a, 'student', 'students')}. "
            f"Class B has {b} {plural(b, 'student', 'students')}."
        ),
        lambda a, b: (
            f"How many more {_more(a, b, 'student does', 'students does')} "
            f"Class {'A' if a > b else 'B'} have?"
        ),
        "👦👧",
    ),
    WordTemplate(
        "school", "add",
        lambda a, b: (
            f"In the classroom, {a} {plural(a, 'student is', 'students are')} drawing "
            f"and {b} {plural(b, 'student is', 'students are')} reading."
        ),
        lambda a, b: "How many students are there in total?",
        "👦👧",
    ),
)


def templates_for(theme: str | None = None, operation: str | None = None) -> list[WordTemplate]:
    return [
        tpl
        for tpl in TEMPLATES
        if (theme is None or tpl.theme == theme)
        and (operation is None or tpl.operation == operation)
    ]
