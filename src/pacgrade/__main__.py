from pacgrade.cli import main

main()
