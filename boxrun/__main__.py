from boxrun.cli.cli import main

main()
