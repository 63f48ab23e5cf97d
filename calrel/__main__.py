from calrel.cli.app import main

main()
