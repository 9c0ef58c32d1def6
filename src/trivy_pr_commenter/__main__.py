from trivy_pr_commenter.cli import run

run()
