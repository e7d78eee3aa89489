from limit.cli import main

main()
