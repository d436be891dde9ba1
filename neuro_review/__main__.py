from neuro_review.cli.review_cli import run

run()
