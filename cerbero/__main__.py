from cerbero.main import main

main()
