#!/usr/bin/env python3
"""
Print the weighted ranking and insights for the stored decision session
"""

import argparse
import sys

from app import create_app
from services.session_service import DecisionSession
from services.decision.categories import category_label


def print_insights(preset=None):
    """Print ranking, margin, top factors and the flip projection"""
    app = create_app()
    with app.app_context():
        session = DecisionSession(decision_service=app.extensions['decision_service'])

        if preset:
            session.apply_preset(preset)
            print(f"Applied weight preset '{preset}'")

        insights = session.insights()

        if not insights.ranking:
            print("No properties saved yet.")
            return

        print("Ranking:")
        for ranked in insights.ranking:
            print(f"  {ranked.rank + 1}. {ranked.property.address} - {ranked.score:.2f}")

        if not insights.available:
            print("\nAdd at least two properties to compare.")
        else:
            print(f"\nWinner: {insights.winner.property.address} by {insights.margin:.2f}")
            for factor in insights.top_factors:
                print(f"  + {factor.label}: {factor.weighted_delta:.2f}")

            flip = insights.flip_projection
            if flip:
                if flip.possible:
                    print(f"Flip: runner-up needs {category_label(flip.category)} "
                          f"at {flip.required_score:.2f} (+{flip.minimum_increase:.2f})")
                else:
                    print(f"Flip: impossible via {category_label(flip.category)}, "
                          f"short by {flip.shortfall:.2f} (max +{flip.reachable_increase:.2f})")

        print(f"\nMost balanced: {insights.most_balanced.address}")
        print(f"Largest gap: {category_label(insights.largest_gap_category)} ({insights.largest_gap_spread:.1f})")
        if insights.mismatch:
            print("One property wins structurally. The other wins emotionally. Decide which matters more.")
        else:
            print("Your numbers and instincts are aligned.")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument('--preset', help='apply a weight preset before printing')
    args = parser.parse_args()

    try:
        print_insights(args.preset)
    except ValueError as e:
        print(f"Error: {str(e)}")
        sys.exit(1)
