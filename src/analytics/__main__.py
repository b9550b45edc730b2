from src.analytics.cli import main

main()
