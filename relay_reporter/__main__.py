from relay_reporter.main import main

if __name__ == "__main__":
    main()
