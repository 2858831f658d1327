from functions_graph.cli import main

main()
