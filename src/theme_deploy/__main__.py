from .deploy_theme import main

main()
