from crashrisk.app import main

main()
