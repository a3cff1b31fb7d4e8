from ecoaudit.cli import main

main()
