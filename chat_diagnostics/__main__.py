from chat_diagnostics.firebase_diagnostics import main

if __name__ == "__main__":
    main()
