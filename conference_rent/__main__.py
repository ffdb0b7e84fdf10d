from .runtime.runner import main

main()
