from bookkeeping.cli import main

main()
