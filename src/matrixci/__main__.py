from matrixci.cli import main

main()
