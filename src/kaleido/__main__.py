from kaleido.cli import main

main()
