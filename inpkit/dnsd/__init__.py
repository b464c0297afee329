"""An authoritative DNS server answering from zone files over UDP."""