from ara_mpp.main import main

main()
