from .scoresheet_pipeline import main

main()
