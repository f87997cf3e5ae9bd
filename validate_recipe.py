"""
Simple script to validate a recipe file.

Usage:
    python validate_recipe.py recipes/tripadvisor_reviews.yaml
    python validate_recipe.py recipes/tripadvisor_reviews.yaml --html debug_dump.html
"""

import argparse
import json
import logging
import sys

import yaml

from extractors.review_page import process_page
from recipe_loader import load_recipe, validate_recipe

logging.basicConfig(level=logging.INFO, format='%(levelname)s: %(message)s')
logger = logging.getLogger(__name__)


def describe_locator(locator) -> str:
    parts = [locator.css]
    if locator.within:
        parts.insert(0, f"within {locator.within}:")
    if locator.index:
        parts.append(f"[{locator.index}]")
    if locator.attr:
        parts.append(f"@{locator.attr}")
    if locator.marker:
        parts.append(f"~/{locator.marker}/")
    return ' '.join(parts)


def main():
    parser = argparse.ArgumentParser(description='Validate a review recipe')
    parser.add_argument('recipe_file')
    parser.add_argument('--html', help='Saved page HTML to run the recipe against')
    args = parser.parse_args()

    try:
        logger.info(f"Loading recipe: {args.recipe_file}")
        recipe = load_recipe(args.recipe_file)

        logger.info("✓ Recipe loaded successfully")
        logger.info(f"  Base origin: {recipe.base_origin}")
        logger.info(f"  URL template: {recipe.url_template}")
        logger.info(f"  Pagination token: {recipe.pagination_token}")
        logger.info(f"  Card CSS: {recipe.card_css}")
        logger.info(f"  Parser: {recipe.parser}")
        logger.info(f"  Fields: {len(recipe.fields)}")

        for rule in recipe.fields:
            extras = []
            if rule.split:
                extras.append(f"split '{rule.split}' part {rule.part}")
            if rule.transform:
                extras.append(rule.transform)
            suffix = f" ({', '.join(extras)})" if extras else ""
            logger.info(f"    - {rule.name}{suffix}")
            for locator in rule.candidates:
                logger.info(f"        {describe_locator(locator)}")
            for paired in rule.paired:
                source = f"@{paired.attr}" if paired.attr else "text"
                transform = f", {paired.transform}" if paired.transform else ""
                logger.info(f"      + {paired.name} ({source} of the same element{transform})")

        # Validate
        warnings = validate_recipe(recipe)
        if warnings:
            logger.warning("Validation warnings:")
            for warning in warnings:
                logger.warning(f"  - {warning}")
        else:
            logger.info("✓ No validation warnings")

        if args.html:
            with open(args.html, 'r', encoding='utf-8') as f:
                html = f.read()
            reviews = process_page(html, args.html, recipe)
            logger.info(f"Extracted {len(reviews)} reviews from {args.html}")
            for review in reviews:
                print(json.dumps(review.to_row(), indent=2, ensure_ascii=False))

        logger.info("")
        logger.info("Recipe is valid and ready to use!")
        logger.info(f"Run with: python review_scraper.py --recipe {args.recipe_file}")

    except FileNotFoundError as e:
        logger.error(f"File not found: {e}")
        sys.exit(1)
    except (ValueError, yaml.YAMLError) as e:
        logger.error(f"Invalid recipe: {e}")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Error: {e}")
        sys.exit(1)


if __name__ == '__main__':
    main()
