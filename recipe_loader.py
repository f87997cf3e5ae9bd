"""
Recipe loader for review scraping.

Loads and validates YAML recipe files that describe where each review
field lives in the target site's markup. Markup drifts over time, so
every selector lives in the recipe and none in the extraction code.
"""

from typing import List, Dict, Any, Optional
from dataclasses import dataclass, field
from pathlib import Path
import re
import yaml

from scraper_config import DEFAULT_RECIPE_PATH

# Post-processors a rule may name
TRANSFORMS = ('collapse_whitespace', 'absolute_url', 'rating')

# Parsers BeautifulSoup may be asked to use
PARSERS = ('lxml', 'html.parser')

PAGINATION_PLACEHOLDER = '{PAGINATION_TOKEN}'


@dataclass
class Locator:
    """One candidate location for a field value."""
    css: str
    within: Optional[str] = None  # scope selector; if present the candidate is decisive
    attr: Optional[str] = None  # attribute to read instead of text content
    index: int = 0  # nth match of css
    marker: Optional[str] = None  # regex the text must contain; removed from the value

    @classmethod
    def from_dict(cls, data: Any, where: str) -> 'Locator':
        """
        Create a Locator from a YAML value.

        A bare string is shorthand for ``{css: <string>}``.

        Raises:
            ValueError: If the locator is malformed
        """
        if isinstance(data, str):
            data = {'css': data}
        if not isinstance(data, dict):
            raise ValueError(f"{where}: locator must be a string or a dictionary")

        css = data.get('css')
        if not isinstance(css, str) or not css.strip():
            raise ValueError(f"{where}: 'css' must be a non-empty string")

        index = data.get('index', 0)
        if not isinstance(index, int) or index < 0:
            raise ValueError(f"{where}: 'index' must be a non-negative integer")

        marker = data.get('marker')
        if marker is not None:
            try:
                re.compile(marker)
            except re.error as e:
                raise ValueError(f"{where}: invalid marker regex: {e}") from e

        return cls(
            css=css,
            within=data.get('within'),
            attr=data.get('attr'),
            index=index,
            marker=marker
        )


@dataclass
class PairedField:
    """A second field read from the element that produced a rule's value."""
    name: str
    attr: Optional[str] = None  # None = text content
    transform: Optional[str] = None

    @classmethod
    def from_dict(cls, name: str, data: Any, where: str) -> 'PairedField':
        """
        Create a PairedField from a YAML value.

        A bare string is shorthand for ``{attr: <string>}``.

        Raises:
            ValueError: If the entry is malformed
        """
        if isinstance(data, str):
            data = {'attr': data}
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ValueError(f"{where}: paired field must be a string or a dictionary")

        transform = data.get('transform')
        if transform is not None and transform not in TRANSFORMS:
            raise ValueError(f"{where}: unknown transform: {transform}")

        return cls(name=name, attr=data.get('attr'), transform=transform)


@dataclass
class FieldRule:
    """
    Ordered candidates plus post-processing for one review field.

    ``paired`` fields are read from the same element as the rule's own
    value, so a name and its link never come from different elements.
    """
    name: str
    candidates: List[Locator]
    split: Optional[str] = None
    part: int = 0
    transform: Optional[str] = None
    paired: List[PairedField] = field(default_factory=list)

    @classmethod
    def from_dict(cls, name: str, data: Any) -> 'FieldRule':
        """
        Create a FieldRule from a YAML value.

        A list is shorthand for ``{candidates: <list>}``.

        Raises:
            ValueError: If the rule is malformed
        """
        if isinstance(data, list):
            data = {'candidates': data}
        if not isinstance(data, dict):
            raise ValueError(f"Field '{name}' must be a list or a dictionary")

        raw_candidates = data.get('candidates')
        if not isinstance(raw_candidates, list) or not raw_candidates:
            raise ValueError(f"Field '{name}' must have a non-empty 'candidates' list")

        candidates = [
            Locator.from_dict(item, f"fields.{name}.candidates[{i}]")
            for i, item in enumerate(raw_candidates)
        ]

        transform = data.get('transform')
        if transform is not None and transform not in TRANSFORMS:
            raise ValueError(f"Field '{name}' has unknown transform: {transform}")

        part = data.get('part', 0)
        if not isinstance(part, int) or part < 0:
            raise ValueError(f"Field '{name}': 'part' must be a non-negative integer")

        raw_paired = data.get('paired') or {}
        if not isinstance(raw_paired, dict):
            raise ValueError(f"Field '{name}': 'paired' must be a dictionary")
        paired = [
            PairedField.from_dict(paired_name, item, f"fields.{name}.paired.{paired_name}")
            for paired_name, item in raw_paired.items()
        ]

        return cls(
            name=name,
            candidates=candidates,
            split=data.get('split'),
            part=part,
            transform=transform,
            paired=paired
        )

    def output_names(self) -> List[str]:
        return [self.name] + [p.name for p in self.paired]


@dataclass
class ReviewRecipe:
    """
    Complete recipe for one review listing.

    Defines the listing URL template, how review cards are found and the
    ordered field rules applied to each card.
    """
    base_origin: str
    card_css: str
    url_template: str
    fields: List[FieldRule]
    pagination_token: str = 'or{offset}'
    parser: str = 'lxml'

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ReviewRecipe':
        """
        Create a ReviewRecipe from a dictionary (loaded from YAML).

        Args:
            data: Dictionary from YAML file

        Returns:
            ReviewRecipe instance

        Raises:
            ValueError: If required fields are missing or invalid
        """
        for key in ('base_origin', 'card_css', 'url_template', 'fields'):
            if key not in data:
                raise ValueError(f"Recipe must have '{key}' field")

        base_origin = data['base_origin']
        if not isinstance(base_origin, str) or not base_origin.strip():
            raise ValueError("'base_origin' must be a non-empty string")

        card_css = data['card_css']
        if not isinstance(card_css, str) or not card_css.strip():
            raise ValueError("'card_css' must be a non-empty string")

        url_template = data['url_template']
        if not isinstance(url_template, str) or PAGINATION_PLACEHOLDER not in url_template:
            raise ValueError(f"'url_template' must contain {PAGINATION_PLACEHOLDER}")

        pagination_token = data.get('pagination_token', 'or{offset}')
        if not isinstance(pagination_token, str) or '{offset}' not in pagination_token:
            raise ValueError("'pagination_token' must contain {offset}")

        parser = data.get('parser', 'lxml')
        if parser not in PARSERS:
            raise ValueError(f"Invalid parser: {parser}")

        fields_data = data['fields']
        if not isinstance(fields_data, dict) or not fields_data:
            raise ValueError("'fields' must be a non-empty dictionary")

        rules = [FieldRule.from_dict(name, rule) for name, rule in fields_data.items()]

        seen = set()
        for rule in rules:
            for name in rule.output_names():
                if name in seen:
                    raise ValueError(f"Field '{name}' is produced by more than one rule")
                seen.add(name)

        return cls(
            base_origin=base_origin.rstrip('/'),
            card_css=card_css,
            url_template=url_template,
            fields=rules,
            pagination_token=pagination_token,
            parser=parser
        )

    def field_names(self) -> List[str]:
        return [name for rule in self.fields for name in rule.output_names()]


def load_recipe(file_path: Optional[str] = None) -> ReviewRecipe:
    """
    Load a recipe from a YAML file.

    Args:
        file_path: Path to YAML recipe file (None = bundled default)

    Returns:
        ReviewRecipe instance

    Raises:
        FileNotFoundError: If file doesn't exist
        ValueError: If recipe is invalid
        yaml.YAMLError: If YAML parsing fails
    """
    path = Path(file_path or DEFAULT_RECIPE_PATH)

    if not path.exists():
        raise FileNotFoundError(f"Recipe file not found: {path}")

    with open(path, 'r', encoding='utf-8') as f:
        data = yaml.safe_load(f)

    if not isinstance(data, dict):
        raise ValueError("Recipe file must contain a YAML dictionary")

    return ReviewRecipe.from_dict(data)


def validate_recipe(recipe: ReviewRecipe) -> List[str]:
    """
    Validate a recipe and return a list of warnings (not errors).

    Args:
        recipe: Recipe to validate

    Returns:
        List of warning messages (empty if no warnings)
    """
    warnings = []

    for url in (recipe.base_origin, recipe.url_template):
        if not url.startswith('http://') and not url.startswith('https://'):
            warnings.append(f"URL may be invalid (missing http/https): {url}")

    names = recipe.field_names()
    for required in ('reviewer_name', 'written_date'):
        if required not in names:
            warnings.append(f"No rule for '{required}' - reviews will never get a unique_id")

    for rule in recipe.fields:
        if rule.transform == 'absolute_url' and not any(c.attr for c in rule.candidates):
            warnings.append(f"Field '{rule.name}' uses absolute_url but reads text, not an attribute")
        if rule.part > 0 and not rule.split:
            warnings.append(f"Field '{rule.name}' sets 'part' without 'split'")
        for paired in rule.paired:
            if paired.transform == 'absolute_url' and not paired.attr:
                warnings.append(f"Field '{paired.name}' uses absolute_url but reads text, not an attribute")

    return warnings
