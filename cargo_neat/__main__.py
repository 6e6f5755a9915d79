from cargo_neat.cli import main

main()
